"""Which tab groups go into the next export."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from sessionlinks.models import AllTabGroups, GroupKey, Partition

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerateOptions:
    """Selected group indexes per partition.

    ``None`` selects every group of the partition, an empty set selects none
    and a non-empty set selects only the listed indexes.
    """

    open_group_indexes: Optional[Set[int]] = None
    closed_group_indexes: Optional[Set[int]] = field(default_factory=set)

    def indexes(self, partition: Partition) -> Optional[Set[int]]:
        if partition is Partition.OPEN:
            return self.open_group_indexes
        return self.closed_group_indexes

    def set_indexes(self, partition: Partition, indexes: Optional[Set[int]]) -> None:
        if partition is Partition.OPEN:
            self.open_group_indexes = indexes
        else:
            self.closed_group_indexes = indexes

    def includes(self, key: GroupKey) -> bool:
        indexes = self.indexes(key.partition)
        return indexes is None or key.index in indexes

    def selected_in(self, groups: AllTabGroups, partition: Partition) -> List[GroupKey]:
        """Selected keys of one partition, in partition order."""
        return [
            GroupKey(partition, group.index)
            for group in groups.partition(partition)
            if self.includes(GroupKey(partition, group.index))
        ]

    def selected_keys(self, groups: AllTabGroups) -> List[GroupKey]:
        """Selected keys, open groups before closed ones."""
        return self.selected_in(groups, Partition.OPEN) + self.selected_in(
            groups, Partition.CLOSED
        )

    def selected_groups(self, groups: AllTabGroups) -> int:
        """Number of groups that the next export would include."""
        return len(self.selected_keys(groups))

    def copy(self) -> "GenerateOptions":
        def _copy(indexes: Optional[Set[int]]) -> Optional[Set[int]]:
            return None if indexes is None else set(indexes)

        return GenerateOptions(
            open_group_indexes=_copy(self.open_group_indexes),
            closed_group_indexes=_copy(self.closed_group_indexes),
        )


class TabGroupSelection:
    """Select and deselect tab groups of a loaded session."""

    def __init__(
        self,
        groups: AllTabGroups | None = None,
        options: GenerateOptions | None = None,
        *,
        fallback_to_all_open: bool = True,
    ) -> None:
        self.groups = groups if groups is not None else AllTabGroups()
        self.options = options if options is not None else GenerateOptions()
        self.fallback_to_all_open = fallback_to_all_open

    def reset(self) -> None:
        """All open windows, no closed ones."""
        self.options.open_group_indexes = None
        self.options.closed_group_indexes = set()

    def is_selected(self, partition: Partition, index: int) -> bool:
        indexes = self.options.indexes(partition)
        return indexes is not None and index in indexes

    def selected_groups(self) -> int:
        return self.options.selected_groups(self.groups)

    def selected_keys(self) -> List[GroupKey]:
        return self.options.selected_keys(self.groups)

    def select(self, partition: Partition, index: int) -> bool:
        """Add a group to the explicit selection.

        Returns True when the selection changed.
        """
        other = Partition.CLOSED if partition is Partition.OPEN else Partition.OPEN
        indexes = self.options.indexes(partition)
        if indexes is None:
            indexes = set()
            self.options.set_indexes(partition, indexes)
        if self.options.indexes(other) is None:
            self.options.set_indexes(other, set())

        if index in indexes:
            return False
        indexes.add(index)
        LOGGER.debug("Selected %s group %d", partition.value, index)
        return True

    def deselect(self, partition: Partition, index: int) -> bool:
        """Remove a group from the explicit selection.

        Returns True when the selection changed.
        """
        indexes = self.options.indexes(partition)
        if indexes is None or index not in indexes:
            return False
        indexes.discard(index)
        LOGGER.debug("Deselected %s group %d", partition.value, index)

        if self.fallback_to_all_open and self.selected_groups() == 0:
            LOGGER.debug("Nothing selected, falling back to all open windows")
            self.options.open_group_indexes = None
            if self.options.closed_group_indexes is None:
                self.options.closed_group_indexes = set()
        return True

    def change(self, partition: Partition, index: int, select: bool) -> bool:
        if select:
            return self.select(partition, index)
        return self.deselect(partition, index)

    def toggle(self, partition: Partition, index: int) -> bool:
        return self.change(partition, index, not self.is_selected(partition, index))

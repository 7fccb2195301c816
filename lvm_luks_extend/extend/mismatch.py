"""Restrict target choices to the volume group a disk can actually reach."""

from __future__ import annotations

from typing import Mapping, Optional

from lvm_luks_extend.domain.models import MismatchOption, MismatchResolution, MountTarget


class MismatchResolver:
    """Build the option set for a disk whose group may not back every target.

    No option that would grow a logical volume outside ``reachable`` is
    ever returned; RETURN_TO_MENU is always the last option.
    """

    def resolve(
        self,
        groups: Mapping[MountTarget, Optional[str]],
        reachable: Optional[str],
    ) -> MismatchResolution:
        options = []
        if reachable:
            options = [
                MismatchOption.for_target(target)
                for target in MountTarget
                if groups.get(target) == reachable
            ]
        return MismatchResolution(
            options=tuple(options) + (MismatchOption.RETURN_TO_MENU,),
            reachable_group=reachable,
            consistent=bool(options),
        )

    def resolve_for_new_disk(
        self, groups: Mapping[MountTarget, Optional[str]]
    ) -> MismatchResolution:
        """A new disk has joined no group yet, so it can reach any target's group."""
        options = tuple(
            MismatchOption.for_target(target) for target in MountTarget if groups.get(target)
        )
        return MismatchResolution(
            options=options + (MismatchOption.RETURN_TO_MENU,),
            reachable_group=None,
            consistent=bool(options),
        )

"""Split newly free capacity between root and /home."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Optional

from lvm_luks_extend.config import settings
from lvm_luks_extend.domain.models import AllocationPlan
from lvm_luks_extend.storage.exceptions import InvalidQuantityError, OverdraftError

QUANTITY_PATTERN = re.compile(r"^[0-9]+([.][0-9]+)?$")


class CapacityPlanner:
    """Validate a requested share and compute the remainder.

    A remainder strictly below ``negligible`` GiB is not worth an lvextend
    call; callers check it with is_negligible() and skip /home. The requested
    share is honoured down to any positive amount.
    """

    def __init__(self, negligible: Optional[Decimal] = None):
        if negligible is None:
            negligible = settings.get_decimal(
                "negligible_allocation_gib", settings.DEFAULT_NEGLIGIBLE_ALLOCATION_GIB
            )
        self.negligible = negligible

    def plan(self, total: Decimal, requested_first: str) -> AllocationPlan:
        """
        Raises:
            InvalidQuantityError: If the request is not a non-negative decimal
            OverdraftError: If the request exceeds ``total``
        """
        raw = (requested_first or "").strip()
        if not QUANTITY_PATTERN.match(raw):
            raise InvalidQuantityError(requested_first)
        first = Decimal(raw)
        if first > total:
            raise OverdraftError(first, total)
        return AllocationPlan(total=total, first=first, second=total - first)

    def is_negligible(self, share: Decimal) -> bool:
        return share < self.negligible or share <= 0

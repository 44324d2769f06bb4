"""
Report Output Helpers
=====================

Subscription id masking and output file naming shared by the reporters.

Functions
---------
mask_subscription_id
    Hide all but the last seven characters of a subscription id.
timestamped_path
    Build ``<prefix>_<YYYY_MM_DD_THHMMSS>.<ext>``.

Classes
-------
SubscriptionMasker
    Masks known subscription ids wherever they appear in report values.

Example
-------
>>> mask_subscription_id("00000000-1111-2222-3333-abcdef123456")
'xxxxxxxx-xxxx-xxxx-xxxx-xxxxxf123456'
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

VISIBLE_CHARS = 7

_ALNUM = re.compile(r"[0-9A-Za-z]")


def mask_subscription_id(subscription_id: str) -> str:
    """
    Mask a subscription id, keeping separators and the last seven characters.

    Parameters
    ----------
    subscription_id : str
        Subscription id, usually a GUID.

    Returns
    -------
    str
        The masked id. Ids of seven characters or fewer are returned as-is.
    """
    if len(subscription_id) <= VISIBLE_CHARS:
        return subscription_id
    head = subscription_id[:-VISIBLE_CHARS]
    return _ALNUM.sub("x", head) + subscription_id[-VISIBLE_CHARS:]


class SubscriptionMasker:
    """
    Replace subscription ids inside arbitrary report values.

    Parameters
    ----------
    subscription_ids : iterable of str
        Ids to mask. Matching is case-insensitive, so ids embedded in
        lowercased resource ids are masked too.
    enabled : bool, default=True
        When False every method returns its input unchanged.

    Examples
    --------
    >>> masker = SubscriptionMasker(["00000000-1111-2222-3333-abcdef123456"])
    >>> masker.mask("/subscriptions/00000000-1111-2222-3333-abcdef123456/rg")
    '/subscriptions/xxxxxxxx-xxxx-xxxx-xxxx-xxxxxf123456/rg'
    """

    def __init__(self, subscription_ids: Iterable[str], enabled: bool = True) -> None:
        self.enabled = enabled
        ids = sorted({s for s in subscription_ids if s}, key=len, reverse=True)
        self._pattern: Optional[re.Pattern] = (
            re.compile("|".join(re.escape(s) for s in ids), re.IGNORECASE)
            if enabled and ids
            else None
        )

    @classmethod
    def for_report(cls, report: Any, enabled: bool = True) -> SubscriptionMasker:
        """Masker covering every subscription that appears in a ScanReport."""
        ids = {s.get("subscription_id", "") for s in report.subscriptions}
        ids.update(r.subscription_id for r in report.service_results)
        ids.update(r.subscription_id for r in report.defender_results)
        ids.update(r.subscription_id for r in report.advisor_results)
        return cls(ids, enabled=enabled)

    def mask(self, text: str) -> str:
        """Mask every known subscription id in ``text``."""
        if self._pattern is None or not text:
            return text
        return self._pattern.sub(lambda m: mask_subscription_id(m.group(0)), text)

    def mask_value(self, value: Any) -> Any:
        """Recursively mask strings inside dicts, lists and tuples."""
        if self._pattern is None:
            return value
        if isinstance(value, str):
            return self.mask(value)
        if isinstance(value, dict):
            return {k: self.mask_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.mask_value(v) for v in value]
        return value


def timestamped_path(prefix: str, extension: str, when: datetime, suffix: str = "") -> Path:
    """
    Build an output file path.

    Parameters
    ----------
    prefix : str
        File name prefix, may include a directory.
    extension : str
        Extension without the dot.
    when : datetime
        Timestamp embedded in the name.
    suffix : str, optional
        Appended after the timestamp (``_defender``, ``_advisor``).

    Returns
    -------
    Path
        e.g. ``azreview_2024_01_15_T103000.csv``.
    """
    return Path(f"{prefix}_{when.strftime('%Y_%m_%d_T%H%M%S')}{suffix}.{extension}")

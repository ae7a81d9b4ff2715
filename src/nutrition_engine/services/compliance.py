"""Compliance classification against reference nutrient ranges."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from nutrition_engine.domain.errors import MissingReferenceDataError
from nutrition_engine.domain.nutrition import ComplianceResult, ReferenceRange

_EXCESS_WEIGHT = 0.5
_MAX_SCORE = 100.0

_logger = logging.getLogger(__name__)


class ReferenceRangeRepository(Protocol):
    """Source of reference ranges from the program's nutrition standards."""

    def get_reference_ranges(self, standard_code: str) -> list[ReferenceRange]:
        """Return reference ranges for a nutrition standard."""


@dataclass(frozen=True)
class ReferenceRangeTable:
    """Lookup of reference ranges keyed by nutrient name."""

    ranges: Mapping[str, ReferenceRange]

    @classmethod
    def from_ranges(cls, ranges: Iterable[ReferenceRange]) -> "ReferenceRangeTable":
        """Build a table from a list of ranges; later entries win."""
        return cls(ranges={entry.nutrient: entry for entry in ranges})

    def get(self, nutrient: str) -> ReferenceRange:
        """Return the range for a nutrient or raise MissingReferenceDataError."""
        reference = self.ranges.get(nutrient)
        if reference is None:
            raise MissingReferenceDataError(nutrient)
        return reference


def classify_compliance(
    totals: Mapping[str, float],
    reference_ranges: ReferenceRangeTable | Mapping[str, ReferenceRange],
) -> ComplianceResult:
    """Bucket each nutrient as adequate, deficient or excess and score the menu.

    Nutrients without a reference range are listed as unscored and do not
    affect the score.
    """
    table = _as_table(reference_ranges)
    adequate: list[str] = []
    deficient: list[str] = []
    excess: list[str] = []
    unscored: list[str] = []
    for nutrient, total in totals.items():
        try:
            reference = table.get(nutrient)
        except MissingReferenceDataError as exc:
            unscored.append(exc.nutrient)
            continue
        if total < reference.min_value:
            deficient.append(nutrient)
        elif total > reference.max_value:
            excess.append(nutrient)
        else:
            adequate.append(nutrient)

    if unscored:
        _logger.debug("Unscored nutrients without reference data: %s", unscored)
    return ComplianceResult(
        adequate=tuple(adequate),
        deficient=tuple(deficient),
        excess=tuple(excess),
        unscored=tuple(unscored),
        score=compliance_score(len(adequate), len(deficient), len(excess)),
    )


def compliance_score(adequate: int, deficient: int, excess: int) -> float:
    """Return the 0-100 compliance score for classification counts."""
    total = adequate + deficient + excess
    if total == 0:
        return 0.0
    raw = (adequate - excess * _EXCESS_WEIGHT) / total * _MAX_SCORE
    return min(max(raw, 0.0), _MAX_SCORE)


def empty_compliance() -> ComplianceResult:
    """Return a compliance result with nothing classified."""
    return ComplianceResult(
        adequate=(), deficient=(), excess=(), unscored=(), score=0.0
    )


def _as_table(
    reference_ranges: ReferenceRangeTable | Mapping[str, ReferenceRange],
) -> ReferenceRangeTable:
    if isinstance(reference_ranges, ReferenceRangeTable):
        return reference_ranges
    return ReferenceRangeTable(ranges=reference_ranges)

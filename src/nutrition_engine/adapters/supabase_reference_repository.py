"""Supabase repository for nutrition standard reference ranges."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.domain.nutrition import ReferenceRange
from nutrition_engine.services.compliance import ReferenceRangeRepository


@dataclass
class SupabaseReferenceRangeRepository(ReferenceRangeRepository):
    """Reads per-nutrient bounds from the nutrition_standards table."""

    client: Client

    def get_reference_ranges(self, standard_code: str) -> list[ReferenceRange]:
        """Return reference ranges for a nutrition standard."""
        response = (
            self.client.table("nutrition_standards")
            .select("nutrient, min_value, max_value")
            .eq("standard_code", standard_code)
            .execute()
        )
        return [
            ReferenceRange(
                nutrient=str(row["nutrient"]),
                min_value=float(row["min_value"]),
                max_value=float(row["max_value"]),
            )
            for row in response.data or []
        ]

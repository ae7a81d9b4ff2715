"""Dependency container wiring for the engine."""

from dataclasses import dataclass

from supabase import create_client

from nutrition_engine.adapters.supabase_audit_repository import SupabaseAuditRepository
from nutrition_engine.adapters.supabase_calculation_repository import (
    SupabaseCalculationRepository,
)
from nutrition_engine.adapters.supabase_menu_repository import SupabaseMenuRepository
from nutrition_engine.adapters.supabase_plan_repository import SupabasePlanRepository
from nutrition_engine.adapters.supabase_reference_repository import (
    SupabaseReferenceRangeRepository,
)
from nutrition_engine.app_logging import configure_logging
from nutrition_engine.config import Settings
from nutrition_engine.services.audit import AuditService
from nutrition_engine.services.costs import CostCalculationService
from nutrition_engine.services.nutrition import NutritionCalculationService
from nutrition_engine.services.plans import MenuPlanService


@dataclass
class AppContainer:
    """Holds engine-wide dependencies."""

    settings: Settings
    audit_service: AuditService
    nutrition_service: NutritionCalculationService
    cost_service: CostCalculationService
    plan_service: MenuPlanService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    menu_repository = SupabaseMenuRepository(supabase_client)
    calculation_repository = SupabaseCalculationRepository(supabase_client)
    audit_service = AuditService(SupabaseAuditRepository(supabase_client))
    retry_attempts = resolved_settings.calculation_retry_attempts
    nutrition_service = NutritionCalculationService(
        menu_repository=menu_repository,
        reference_repository=SupabaseReferenceRangeRepository(supabase_client),
        repository=calculation_repository,
        audit_service=audit_service,
        default_standard=resolved_settings.default_nutrition_standard,
        retry_attempts=retry_attempts,
    )
    cost_service = CostCalculationService(
        menu_repository=menu_repository,
        repository=calculation_repository,
        audit_service=audit_service,
        retry_attempts=retry_attempts,
    )
    plan_service = MenuPlanService(
        repository=SupabasePlanRepository(supabase_client),
        menu_repository=menu_repository,
        audit_service=audit_service,
        retry_attempts=retry_attempts,
    )
    return AppContainer(
        settings=resolved_settings,
        audit_service=audit_service,
        nutrition_service=nutrition_service,
        cost_service=cost_service,
        plan_service=plan_service,
    )

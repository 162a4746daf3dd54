"""Validation profile listing."""

from fastapi import APIRouter, Depends

from interlis_worker.api.dependencies import AppServices, get_services
from interlis_worker.models.domain import Profile

router = APIRouter(prefix="/api/v1")


@router.get("/profile", response_model=list[Profile])
def get_profiles(services: AppServices = Depends(get_services)):
    """List the profiles clients may validate with, in display order."""
    return services.profile_provider.get_profiles()

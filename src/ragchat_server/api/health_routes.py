from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_namespace
from .models import HealthResponse

router = APIRouter(tags=["health"])

@router.get("/", response_model=HealthResponse)
def health(namespace: Annotated[str, Depends(get_namespace)]) -> HealthResponse:
    return HealthResponse(status="ok", namespace=namespace)

from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import MaintenancePriority, MaintenanceStatus
from models.models import User
from schemas.schema import MaintenanceCreate, MaintenanceUpdate
from services.maintenance_service import MaintenanceService

router = APIRouter(tags=["Maintenance"])


@cbv(router)
class MaintenanceRoutes:
    @router.post("/", status_code=201)
    @safe_handler
    async def create_request(
        self,
        data: MaintenanceCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await MaintenanceService(db).create_request(data, current_user)

    @router.get("/")
    @safe_handler
    async def list_requests(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        building_id: int | None = None,
        status: MaintenanceStatus | None = None,
        priority: MaintenancePriority | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await MaintenanceService(db).list_requests(
            current_user,
            page=page,
            limit=limit,
            building_id=building_id,
            status=status,
            priority=priority,
        )

    @router.get("/{request_id}")
    @safe_handler
    async def get_request(
        self,
        request_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await MaintenanceService(db).get_request(request_id, current_user)

    @router.put("/{request_id}")
    @safe_handler
    async def update_request(
        self,
        request_id: int,
        data: MaintenanceUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await MaintenanceService(db).update_request(request_id, data, current_user)

    @router.delete("/{request_id}")
    @safe_handler
    async def delete_request(
        self,
        request_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await MaintenanceService(db).delete_request(request_id, current_user)

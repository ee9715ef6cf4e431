import logging

from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from schemas.schema import TenancyCreate, TenancyUpdate
from services.tenancy_service import TenancyService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Tenancies"])


@cbv(router)
class TenancyRoutes:
    @router.post("/", status_code=201)
    @safe_handler
    async def create_tenancy(
        self,
        data: TenancyCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).create_tenancy(data, current_user)

    @router.get("/")
    @safe_handler
    async def list_tenancies(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        building_id: int | None = None,
        unit_id: int | None = None,
        is_active: bool | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).list_tenancies(
            current_user,
            page=page,
            limit=limit,
            building_id=building_id,
            unit_id=unit_id,
            is_active=is_active,
        )

    @router.get("/my")
    @safe_handler
    async def my_tenancies(
        self,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).my_tenancies(current_user)

    @router.get("/{tenancy_id}")
    @safe_handler
    async def get_tenancy(
        self,
        tenancy_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).get_tenancy(tenancy_id, current_user)

    @router.put("/{tenancy_id}")
    @safe_handler
    async def update_tenancy(
        self,
        tenancy_id: int,
        data: TenancyUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).update_tenancy(tenancy_id, data, current_user)

    @router.post("/{tenancy_id}/end")
    @safe_handler
    async def end_tenancy(
        self,
        tenancy_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).end_tenancy(tenancy_id, current_user)

    @router.delete("/{tenancy_id}")
    @safe_handler
    async def delete_tenancy(
        self,
        tenancy_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenancyService(db).delete_tenancy(tenancy_id, current_user)

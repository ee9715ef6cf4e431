from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from schemas.schema import BuildingCreate, BuildingUpdate
from services.building_service import BuildingService

router = APIRouter(tags=["Buildings"])


@cbv(router)
class BuildingRoutes:
    @router.post("/", status_code=201)
    @safe_handler
    async def create_building(
        self,
        data: BuildingCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await BuildingService(db).create_building(data, current_user)

    @router.get("/")
    @safe_handler
    async def list_buildings(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        city: str | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await BuildingService(db).list_buildings(
            current_user, page=page, limit=limit, city=city
        )

    @router.get("/{building_id}")
    @safe_handler
    async def get_building(
        self,
        building_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await BuildingService(db).get_building(building_id, current_user)

    @router.put("/{building_id}")
    @safe_handler
    async def update_building(
        self,
        building_id: int,
        data: BuildingUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await BuildingService(db).update_building(building_id, data, current_user)

    @router.delete("/{building_id}")
    @safe_handler
    async def delete_building(
        self,
        building_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await BuildingService(db).delete_building(building_id, current_user)

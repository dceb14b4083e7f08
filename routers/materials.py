"""
Materials (inventory) API endpoints.

Materials are staff inventory: students are refused on every route. Teachers
manage the items they created; admins manage all of them.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import get_scope, require_staff
from auth.identity import StaffIdentity
from auth.scope import Scope, filter_materials
from constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import get_db
from models import Material
from schemas import (
    MaterialCreate,
    MaterialUpdate,
    MaterialResponse,
    MaterialListResponse,
    MaterialSavedResponse,
    MessageResponse,
)
from utils.pagination import paginate
from utils.query_helpers import material_with_creator, ilike_any

router = APIRouter()
logger = logging.getLogger(__name__)


def _material_to_response(material: Material) -> MaterialResponse:
    data = MaterialResponse.model_validate(material)
    data.low_stock = material.quantity <= material.minimum
    return data


def _get_material_in_scope(db: Session, material_id: int, scope: Scope) -> Material:
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Material not found",
        )
    if not scope.allows_material(material):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return material


def _ensure_sku_free(db: Session, sku: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Material.id).filter(Material.sku == sku)
    if exclude_id is not None:
        query = query.filter(Material.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"SKU {sku} already exists",
        )


@router.get("/materials", response_model=MaterialListResponse)
async def get_materials(
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    low_stock: Optional[bool] = Query(None, description="Only items at or below their minimum"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    List inventory items.

    - **search**: Case-insensitive match on name or SKU
    - **low_stock**: true keeps only items with quantity <= minimum
    """
    query = filter_materials(db.query(Material).options(*material_with_creator()), scope)

    if search:
        query = query.filter(ilike_any(search, Material.name, Material.sku))

    if low_stock:
        query = query.filter(Material.quantity <= Material.minimum)

    query = query.order_by(Material.name.asc(), Material.id.asc())
    materials, pagination = paginate(query, page, limit)

    return MaterialListResponse(
        materials=[_material_to_response(m) for m in materials],
        pagination=pagination,
    )


@router.get("/materials/{material_id}", response_model=MaterialResponse)
async def get_material(
    material_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    return _material_to_response(_get_material_in_scope(db, material_id, scope))


@router.post("/materials", response_model=MaterialSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_material(
    data: MaterialCreate,
    staff: StaffIdentity = Depends(require_staff),
    db: Session = Depends(get_db),
):
    _ensure_sku_free(db, data.sku)

    material = Material(**data.model_dump(), created_by_id=staff.id)
    db.add(material)
    db.commit()
    db.refresh(material)

    logger.info("Material %s (%s) created by %s", material.id, material.sku, staff.email)
    return MaterialSavedResponse(
        message="Material created successfully",
        material=_material_to_response(material),
    )


@router.put("/materials/{material_id}", response_model=MaterialSavedResponse)
async def update_material(
    material_id: int,
    data: MaterialUpdate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    material = _get_material_in_scope(db, material_id, scope)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("sku") and changes["sku"] != material.sku:
        _ensure_sku_free(db, changes["sku"], exclude_id=material.id)

    for field, value in changes.items():
        if value is not None:
            setattr(material, field, value)

    db.commit()
    db.refresh(material)

    return MaterialSavedResponse(
        message="Material updated successfully",
        material=_material_to_response(material),
    )


@router.delete("/materials/{material_id}", response_model=MessageResponse)
async def delete_material(
    material_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    material = _get_material_in_scope(db, material_id, scope)
    db.delete(material)
    db.commit()

    logger.info("Material %s deleted by %s", material_id, staff.email)
    return MessageResponse(message="Material deleted successfully")

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.schemas.banking import BankAccountResponse
from app.schemas.responses import SuccessResponse
from app.schemas.storefront import (
    PurchaseRequest,
    PurchaseResult,
    StoreItemCreate,
    StoreItemResponse,
    StoreItemUpdate,
    StudentPurchaseResponse,
)
from app.services.academic_service import AcademicService
from app.services.storefront_service import StorefrontService

router = APIRouter()


@router.post("/items", response_model=SuccessResponse[StoreItemResponse], status_code=status.HTTP_201_CREATED)
async def create_item(
    item_in: StoreItemCreate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    item = await StorefrontService.create_item(db, current_user.id, item_in)
    return SuccessResponse(data=item, message="Store item created")


@router.patch("/items/{item_id}", response_model=SuccessResponse[StoreItemResponse])
async def update_item(
    item_id: UUID,
    item_in: StoreItemUpdate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    item = await StorefrontService.update_item(db, item_id, current_user.id, item_in)
    return SuccessResponse(data=item, message="Store item updated")


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def delete_item(
    item_id: UUID,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    await StorefrontService.delete_item(db, item_id, current_user.id)
    return SuccessResponse(message="Store item deleted")


@router.get("/classes/{class_id}/items", response_model=SuccessResponse[List[StoreItemResponse]])
async def list_class_items(
    class_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Items offered in a class. Teachers see every item in their own classes;
    enrolled students see the available ones.
    """
    if current_user.is_student:
        items = await StorefrontService.list_student_class_items(db, class_id, current_user.id)
    else:
        await AcademicService.get_owned_class(db, class_id, current_user.id)
        items = await StorefrontService.list_class_items(db, class_id)
    return SuccessResponse(data=items)


@router.post("/purchase", response_model=SuccessResponse[PurchaseResult])
async def purchase(
    purchase_in: PurchaseRequest,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Buy an item with one of the student's accounts.
    """
    result = await StorefrontService.purchase(db, current_user.id, purchase_in)
    return SuccessResponse(
        data=PurchaseResult(
            purchase=StudentPurchaseResponse.model_validate(result["purchase"]),
            account=BankAccountResponse.model_validate(result["account"]),
        ),
        message="Item purchased successfully",
    )

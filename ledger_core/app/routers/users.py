from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import MessageOut, UserCreate, UserOut, UserUpdate
from ..services import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db)):
    """Active users, newest first."""
    return UserService.list_active(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService.get_user(db, user_id)


@router.post("", response_model=UserOut, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    # also registers the vendor and item if they are new
    user = UserService.create_user(
        db,
        vendor_name=data.vendor_name,
        item_name=data.item_name,
        phone=data.phone,
        address=data.address,
    )
    db.commit()
    db.refresh(user)
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    user = UserService.update_user(db, user_id, **data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageOut)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    UserService.deactivate_user(db, user_id)
    db.commit()
    return {"message": "User deleted successfully"}

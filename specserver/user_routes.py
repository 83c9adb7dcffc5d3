"""API routes for users."""

from fastapi import APIRouter, Depends, HTTPException

from specgraph.models.spec_version import User, UserCreate
from specserver.spec_store import ConflictError, SpecStore, get_store

router = APIRouter()


@router.post("/users", status_code=201)
def create_user(request: UserCreate, store: SpecStore = Depends(get_store)) -> User:
    """register a user."""
    if not request.username.strip():
        raise HTTPException(status_code=400, detail="username is required")
    try:
        return store.create_user(request)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/users")
def list_users(store: SpecStore = Depends(get_store)) -> list[User]:
    """list users ordered by id."""
    return store.list_users()

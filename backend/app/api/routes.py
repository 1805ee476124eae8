from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.entities import router as entities_router
from app.api.uploads import router as uploads_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(entities_router)
router.include_router(uploads_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Huddle API"}

from fastapi import APIRouter
from .quote_public_router import router as quote_public_router

router = APIRouter()

router.include_router(quote_public_router)

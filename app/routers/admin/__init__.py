from fastapi import APIRouter
from .company_router import router as company_router
from .team_router import router as team_router
from .customers_router import router as customers_router
from .products_router import router as products_router
from .quotes_router import router as quotes_router, links_router as quote_links_router
from .dashboard_router import router as dashboard_router
from .activity_router import router as activity_router

router = APIRouter()

router.include_router(company_router)
router.include_router(team_router)
router.include_router(customers_router)
router.include_router(products_router)
router.include_router(quotes_router)
router.include_router(quote_links_router)
router.include_router(dashboard_router)
router.include_router(activity_router)

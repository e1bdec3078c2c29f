"""API routers."""

from recallforge.api.routes.review import router as review_router

__all__ = ["review_router"]

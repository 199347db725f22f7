"""Route aggregation for the grading web application."""

from fastapi import APIRouter

from . import auth, grading

router = APIRouter()
router.include_router(auth.router)
router.include_router(grading.router)

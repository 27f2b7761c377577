from .router import router as chair_reports_router

__all__ = ["chair_reports_router"]

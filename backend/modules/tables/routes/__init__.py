from .floor_plan_routes import router

__all__ = ["router"]

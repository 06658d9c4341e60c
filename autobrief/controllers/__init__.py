"""FastAPI routers acting as controllers in the MVC architecture."""

from . import briefs, functions, profile, templates, workflows

__all__ = ["briefs", "functions", "profile", "templates", "workflows"]

"""
API Dependencies

FastAPI dependency injection for the chart pipeline, which is created
in the application lifespan and kept on app.state.
"""

from fastapi import HTTPException, Request, status

from ..pipeline import ChartPipeline


def get_pipeline(request: Request) -> ChartPipeline:
    """Get the chart pipeline of the running application."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Pipeline not ready")
    return pipeline

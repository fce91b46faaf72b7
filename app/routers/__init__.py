"""
routers/ — FastAPI route modules.

Each file contains a thin APIRouter. All journal logic
lives in services/. Routers parse input, call the service,
and return responses.
"""

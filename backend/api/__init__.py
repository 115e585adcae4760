"""
Salesdesk API package.

The application lives in ``api.app`` (``create_app`` and the module-level
``app`` for uvicorn). It is not imported here so that route modules can
import ``api.dependencies`` without pulling in the whole application.
"""

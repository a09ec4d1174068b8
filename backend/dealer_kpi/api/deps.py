"""
Dependency injection for FastAPI.
"""

from typing import Annotated

from fastapi import Depends

from dealer_kpi.core.config import Settings, get_settings

AppSettings = Annotated[Settings, Depends(get_settings)]

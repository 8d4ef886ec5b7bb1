"""
Typed settings built from the YAML configuration.
Location: backend/calc_engine/config/settings.py
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from backend.models.commission_schemas import BusinessLine
from .config_manager import ConfigManager

logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class EngineSettings(BaseModel):
    """Switches for the commission engine.

    resolve_condition_fields: read each condition's ``field`` from the sale
        instead of always comparing against the sale amount.
    require_unique_business_lines: reject plan lists where two plans share a
        business line instead of taking the first match.
    """
    resolve_condition_fields: bool = False
    require_unique_business_lines: bool = False


class IngestionSettings(BaseModel):
    default_business_line: BusinessLine = BusinessLine.LINE1


class ExportSettings(BaseModel):
    calculations_sheet: str = "Calculations"
    details_sheet: str = "Details"


class ServerSettings(BaseModel):
    # Origins of the dashboard front-end allowed to call the API
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


class AppSettings(BaseModel):
    logging: LoggingSettings = LoggingSettings()
    engine: EngineSettings = EngineSettings()
    ingestion: IngestionSettings = IngestionSettings()
    export: ExportSettings = ExportSettings()
    server: ServerSettings = ServerSettings()
    plans: List[Dict[str, Any]] = []


def load_settings(config_manager: ConfigManager) -> AppSettings:
    """Validate the raw configuration sections into an AppSettings."""
    settings = AppSettings(
        logging=LoggingSettings(**config_manager.get_section('logging')),
        engine=EngineSettings(**config_manager.get_section('engine')),
        ingestion=IngestionSettings(**config_manager.get_section('ingestion')),
        export=ExportSettings(**config_manager.get_section('export')),
        server=ServerSettings(**config_manager.get_section('server')),
        plans=config_manager.get('plans', default=[]) or [],
    )
    logger.debug(f"Loaded settings: {settings.model_dump(exclude={'plans'})}")
    return settings

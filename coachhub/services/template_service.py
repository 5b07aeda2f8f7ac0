# coachhub/services/template_service.py
"""
Template rendering service for the CoachHub platform.

Provides centralized template rendering using Jinja2 for email bodies.
"""

from datetime import datetime
from decimal import Decimal
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import BRAND_NAME
from .base import BaseService

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


class TemplateService(BaseService):
    """
    Centralized template rendering service using Jinja2.

    Templates live under ``coachhub/templates``; every render receives the
    common context (brand name, frontend URL, current year).
    """

    def __init__(self, db: Optional[Session] = None, template_dir: Optional[Path] = None):
        super().__init__(db)

        self.template_dir = template_dir or TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._register_custom_filters()

    def _register_custom_filters(self) -> None:
        def currency(value: Union[float, Decimal, int]) -> str:
            return f"${float(value):,.2f}"

        def format_date(value: datetime, format_str: str = "%B %d, %Y") -> str:
            if isinstance(value, str):
                return value
            return value.strftime(format_str)

        def format_time(value: datetime, format_str: str = "%H:%M UTC") -> str:
            if isinstance(value, str):
                return value
            return value.strftime(format_str)

        self.env.filters["currency"] = currency
        self.env.filters["format_date"] = format_date
        self.env.filters["format_time"] = format_time

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now().year,
            "frontend_url": settings.frontend_url,
            "support_email": settings.from_email,
        }

    @BaseService.measure_operation("render_template")
    def render_template(self, template_name: str, context: Optional[Dict[str, Any]] = None, **kwargs) -> str:
        """
        Render a template with the given context.

        Args:
            template_name: Path to template relative to templates directory
            context: Dictionary of template variables
            **kwargs: Additional template variables

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        try:
            template = self.env.get_template(str(getattr(template_name, "value", template_name)))

            full_context = self.get_common_context()
            if context:
                full_context.update(context)
            full_context.update(kwargs)

            return template.render(full_context)

        except TemplateNotFound:
            self.logger.error(f"Template not found: {template_name}")
            raise
        except Exception as e:
            self.logger.error(f"Error rendering template {template_name}: {str(e)}")
            raise

    @BaseService.measure_operation("render_string")
    def render_string(self, template_string: str, context: Optional[Dict[str, Any]] = None, **kwargs) -> str:
        """Render a template from a string."""
        template = self.env.from_string(template_string)
        full_context = self.get_common_context()
        if context:
            full_context.update(context)
        full_context.update(kwargs)
        return template.render(full_context)

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.api.core.constants import WIDGET_DEFAULT_DISPLAY_NAME

TemplateType = Literal["widget.html", "widget-country.html", "widget-eachPlace.html"]

TEMPLATE_DIR = Path(__file__).parent / "templates"

jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


@dataclass(frozen=True)
class WidgetRenderConfig:
    """Values injected into one widget page render."""

    api_key: str
    display_name: str = WIDGET_DEFAULT_DISPLAY_NAME
    place: str | None = None


def render_widget(template_name: TemplateType, config: WidgetRenderConfig) -> str:
    template = jinja_env.get_template(template_name)
    return template.render(
        api_key=config.api_key,
        display_name=config.display_name,
        place=config.place,
    )

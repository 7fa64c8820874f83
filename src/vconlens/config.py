"""Configuration handling."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional
import yaml

from .layout import LayoutParams


@dataclass
class SourceConfig:
    kind: str = "directory"
    directory: Optional[str] = None
    convex_url: Optional[str] = None
    page_size: int = 5
    timeout_s: float = 30.0


@dataclass
class LayoutConfig:
    base_radius: float = 40.0
    per_item_radius: float = 12.0
    padding: float = 8.0
    charge_strength: float = -200.0
    center_strength: float = 0.1
    collide_strength: float = 0.9
    collide_iterations: int = 3
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    alpha_decay: float = 0.0228
    drag_alpha_target: float = 0.3
    reheat_alpha: float = 0.3
    click_threshold: float = 4.0
    frame_interval_ms: int = 16

    def to_params(self) -> LayoutParams:
        values = asdict(self)
        values.pop("frame_interval_ms")
        return LayoutParams(**values)


@dataclass
class AssistantConfig:
    mode: str = "local"
    include_context: bool = False
    fallback_seed: Optional[int] = None
    identity_file: str = "chat_identity.yml"


@dataclass
class Config:
    base_dir: str
    window_width: int = 1200
    window_height: int = 800
    source: SourceConfig = field(default_factory=SourceConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    context: dict = field(default_factory=dict)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    source = SourceConfig(**data.get("source", {}))
    layout = LayoutConfig(**data.get("layout", {}))
    assistant = AssistantConfig(**data.get("assistant", {}))

    return Config(
        base_dir=data.get("base_dir", ""),
        window_width=int(data.get("window_width", 1200)),
        window_height=int(data.get("window_height", 800)),
        source=source,
        layout=layout,
        assistant=assistant,
        context=data.get("context", {}),
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "base_dir": config.base_dir,
        "window_width": config.window_width,
        "window_height": config.window_height,
        "source": asdict(config.source),
        "layout": asdict(config.layout),
        "assistant": asdict(config.assistant),
        "context": config.context,
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)

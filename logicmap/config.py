from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Settings:
    # Label limits
    lenient_max_label: int = 50
    strict_max_label: int = 30
    ellipsis: str = "..."

    # Diagram header
    renderer_hint: str = "elk"
    node_spacing: int = 50
    rank_spacing: int = 50
    max_text_size: int = 500000
    min_diagram_chars: int = 8  # node/edge text shorter than this means "no diagram"

    # Session / renderer
    debounce_seconds: float = 0.8
    render_timeout_seconds: float = 30.0
    mermaid_cli: str = "mmdc"

    # Fit-to-width zoom
    zoom_min: float = 0.5
    zoom_max: float = 1.0
    zoom_buffer_px: int = 40

    # Step tracer
    ollama_model: str = "gpt-oss"
    llm_temperature: float = 0.1

    def with_overrides(self, **kwargs) -> "Settings":
        clean = {k: v for k, v in kwargs.items() if v is not None}
        return replace(self, **clean)


SETTINGS = Settings()

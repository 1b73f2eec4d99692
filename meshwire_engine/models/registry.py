"""Model registry for meshwire."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


FLASH_IMAGE_MODEL = "gemini-2.5-flash-image"
PRO_IMAGE_MODEL = "gemini-3-pro-image-preview"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"


@dataclass(frozen=True)
class ModelSpec:
    name: str
    capabilities: tuple[str, ...]
    supports_image_size: bool = False
    requires_paid_key: bool = False

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities


_DEFAULT_MODELS: dict[str, ModelSpec] = {
    FLASH_IMAGE_MODEL: ModelSpec(
        name=FLASH_IMAGE_MODEL,
        capabilities=("image", "edit"),
    ),
    PRO_IMAGE_MODEL: ModelSpec(
        name=PRO_IMAGE_MODEL,
        capabilities=("image", "edit"),
        supports_image_size=True,
        requires_paid_key=True,
    ),
    VIDEO_MODEL: ModelSpec(
        name=VIDEO_MODEL,
        capabilities=("video",),
        requires_paid_key=True,
    ),
}


class ModelRegistry:
    def __init__(self, models: Mapping[str, ModelSpec] | None = None) -> None:
        self._models = dict(models) if models else dict(_DEFAULT_MODELS)

    def get(self, name: str) -> ModelSpec | None:
        return self._models.get(name)

    def list(self) -> Iterable[ModelSpec]:
        return self._models.values()

    def by_capability(self, capability: str) -> list[ModelSpec]:
        return [model for model in self._models.values() if model.supports(capability)]

    def supports_image_size(self, name: str) -> bool:
        model = self.get(name)
        return bool(model and model.supports_image_size)

    def requires_paid_key(self, name: str) -> bool:
        model = self.get(name)
        return bool(model and model.requires_paid_key)

from __future__ import annotations

from typing import Iterable

from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.image_context import ImageContext
from image_library.domain.exceptions import ConfigurationError


class ImageContextRegistry:
    """Contexts keyed by ``ImageContext.key``; registering a key again replaces it."""

    def __init__(self) -> None:
        self._contexts: dict[str, ImageContext] = {}

    def register(self, context: ImageContext) -> None:
        self._contexts[context.key] = context

    def register_many(self, contexts: Iterable[ImageContext]) -> None:
        for context in contexts:
            self.register(context)

    def remove(self, key: str) -> None:
        self._contexts.pop(key, None)

    def get(self, key: str) -> ImageContext:
        try:
            return self._contexts[key]
        except KeyError as exc:
            raise ConfigurationError(f"Image context with key '{key}' is not registered") from exc

    def resolve(self, context: ImageContext | str) -> ImageContext:
        if isinstance(context, ImageContext):
            return context
        return self.get(context)

    def has(self, key: str) -> bool:
        return key in self._contexts

    def all(self) -> list[ImageContext]:
        return list(self._contexts.values())


class ConversionRegistry:
    def __init__(self) -> None:
        self._definitions: dict[str, ConversionDefinition] = {}

    def add(self, definition: ConversionDefinition) -> None:
        definition.validate(raise_errors=True)
        self._definitions[definition.name] = definition

    def get(self, name: str) -> ConversionDefinition:
        try:
            return self._definitions[name]
        except KeyError as exc:
            raise ConfigurationError(f"Conversion definition '{name}' is not registered") from exc

    def all(self) -> list[ConversionDefinition]:
        return list(self._definitions.values())

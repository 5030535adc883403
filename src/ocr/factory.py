"""
OCR Engine Factory

Factory for creating text recognizer instances.
"""

import importlib
from typing import Dict, Type, Union

from .base import TextRecognizer


# Registry of available engines ("module.Class" strings are imported lazily)
_ENGINE_REGISTRY: Dict[str, Union[str, Type[TextRecognizer]]] = {
    "tesseract": "tesseract_engine.TesseractEngine",
}

# Cache for loaded engine classes
_ENGINE_CACHE: Dict[str, Type[TextRecognizer]] = {}


def _load_engine_class(engine_type: str) -> Type[TextRecognizer]:
    """Lazily load an engine class by type."""
    if engine_type in _ENGINE_CACHE:
        return _ENGINE_CACHE[engine_type]

    entry = _ENGINE_REGISTRY[engine_type]
    if isinstance(entry, str):
        module_name, class_name = entry.rsplit(".", 1)
        module = importlib.import_module(f".{module_name}", package="src.ocr")
        engine_class = getattr(module, class_name)
    else:
        engine_class = entry

    _ENGINE_CACHE[engine_type] = engine_class
    return engine_class


def create_engine(engine_type: str = "tesseract", **config) -> TextRecognizer:
    """
    Create an OCR engine by type.

    Args:
        engine_type: Engine type identifier. Available types:
            - "tesseract" (default): pytesseract wrapper
        **config: Engine-specific configuration options:
            For "tesseract":
                - tesseract_cmd: Path to the tesseract executable
                - timeout: Per-call timeout in seconds

    Returns:
        Configured TextRecognizer instance

    Raises:
        ValueError: If engine_type is not recognized

    Example:
        engine = create_engine("tesseract", tesseract_cmd="/usr/bin/tesseract")
        with engine:
            reading = engine.recognize(binary_image)
    """
    if engine_type not in _ENGINE_REGISTRY:
        available = ", ".join(_ENGINE_REGISTRY.keys())
        raise ValueError(f"Unknown engine type: {engine_type}. Available: {available}")

    engine_class = _load_engine_class(engine_type)
    engine = engine_class()

    if config:
        engine.configure(**config)

    return engine


def register_engine(name: str, engine_class: type) -> None:
    """
    Register a custom OCR engine type.

    Args:
        name: Engine type identifier
        engine_class: TextRecognizer subclass

    Example:
        from src.ocr import register_engine, TextRecognizer

        class MyCustomEngine(TextRecognizer):
            ...

        register_engine("custom", MyCustomEngine)
    """
    if not isinstance(engine_class, type) or not issubclass(engine_class, TextRecognizer):
        raise TypeError(f"{engine_class} must be a subclass of TextRecognizer")
    _ENGINE_REGISTRY[name] = engine_class
    _ENGINE_CACHE.pop(name, None)


def available_engines() -> list[str]:
    """
    List available engine types.

    Returns:
        List of registered engine type names
    """
    return list(_ENGINE_REGISTRY.keys())

from .generator import GenerationError, HttpTextGenerator, MockTextGenerator, TextGenerator, build_generator

__all__ = [
    "GenerationError",
    "HttpTextGenerator",
    "MockTextGenerator",
    "TextGenerator",
    "build_generator",
]

"""Domain Layer: value objects, queue models, exceptions, events and ports."""

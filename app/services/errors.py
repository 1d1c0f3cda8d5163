"""Error taxonomy for the classification pipeline.

Every error carries a stable ``code`` and the HTTP status the API layer should
answer with, so routes translate them without inspecting the error kind.
"""

from __future__ import annotations


class ClassificationError(Exception):
    """Base class for failures raised by the classification pipeline."""

    code = "classification_error"
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ClassificationError):
    """A required setting (API key, connection string) is missing."""

    code = "configuration_error"


class TaxonomyNotFoundError(ClassificationError):
    """The named collection does not exist or has no categories."""

    code = "taxonomy_not_found"
    status_code = 404


class LLMInvocationError(ClassificationError):
    """The provider call failed: network error, timeout or non-2xx answer."""

    code = "llm_invocation_error"


class LLMFormatError(ClassificationError):
    """The provider answered, but not with the JSON object the prompt demands."""

    code = "llm_format_error"
    public_message = "LLM returned an invalid response"

    def __init__(self, raw_content: str) -> None:
        super().__init__(self.public_message)
        self.raw_content = raw_content


class CategoryResolutionError(ClassificationError):
    """The LLM named a category/subcategory pair that is not in the taxonomy."""

    code = "category_resolution_error"

    def __init__(self, category: str, subcategory: str) -> None:
        super().__init__(f"Category/subcategory not found in taxonomy: {category!r} / {subcategory!r}")
        self.category = category
        self.subcategory = subcategory


class PersistenceError(ClassificationError):
    """A store write failed. Rows written before the failure are left in place."""

    code = "persistence_error"

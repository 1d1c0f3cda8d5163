from __future__ import annotations

from app.services.taxonomy_store import TaxonomyCategory

CLASSIFICATION_PROMPT_TEMPLATE = """You are an AI issue classification assistant.
Your goal:
Read the issue description below and choose the *most relevant* category and subcategory
from the predefined list.

Predefined categories and subcategories:
{categories}

Issue description:
{text}

Return your response as valid JSON only (no markdown, no explanations):
{{
  "category": "<category name>",
  "subcategory": "<subcategory name>",
  "reason": "<short reasoning why you chose this category>"
}}"""


def format_categories(taxonomy: list[TaxonomyCategory]) -> str:
    blocks: list[str] = []
    for category in taxonomy:
        lines = [
            f"  - {sub.name}" if sub.is_bare else f"  - {sub.name}: {sub.description}"
            for sub in category.subcategories
        ]
        if category.description:
            lines.insert(0, category.description)
        blocks.append(f"{category.name}:\n" + "\n".join(lines))
    return "\n\n".join(blocks)


def render_classification_prompt(text: str, taxonomy: list[TaxonomyCategory]) -> str:
    return CLASSIFICATION_PROMPT_TEMPLATE.format(categories=format_categories(taxonomy), text=text)

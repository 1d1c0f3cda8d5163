from __future__ import annotations

from app.services.prompt_templates import format_categories, render_classification_prompt
from app.services.taxonomy_store import Subcategory, TaxonomyCategory


def _taxonomy() -> list[TaxonomyCategory]:
    return [
        TaxonomyCategory(
            name="Payroll",
            subcategories=[Subcategory("Payslip request"), Subcategory("Tax / BPJS")],
        ),
        TaxonomyCategory(
            name="System Access",
            description="Internal HR systems.",
            subcategories=[Subcategory("Password reset", "Reset or unlock password for system account.")],
        ),
    ]


def test_format_categories_renders_each_block():
    rendered = format_categories(_taxonomy())

    assert rendered == (
        "Payroll:\n"
        "  - Payslip request\n"
        "  - Tax / BPJS\n"
        "\n"
        "System Access:\n"
        "Internal HR systems.\n"
        "  - Password reset: Reset or unlock password for system account."
    )


def test_prompt_embeds_taxonomy_text_and_json_contract():
    prompt = render_classification_prompt("I need my payslip for March", _taxonomy())

    assert "Issue description:\nI need my payslip for March" in prompt
    assert "  - Payslip request" in prompt
    assert '"category": "<category name>"' in prompt
    assert '"subcategory": "<subcategory name>"' in prompt
    assert '"reason":' in prompt
    assert "{categories}" not in prompt


def test_prompt_keeps_braces_in_issue_text():
    prompt = render_classification_prompt('Error {"code": 500} on login', _taxonomy())

    assert 'Error {"code": 500} on login' in prompt

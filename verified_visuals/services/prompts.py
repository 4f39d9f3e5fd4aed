"""
Pipeline prompts (shared)

Directives sent to the remote model by the research and structuring stages.
"""

from verified_visuals.contracts import Audience, ChartKind
from verified_visuals.core.config import SUMMARY_MAX_WORDS

_CHART_KINDS = ", ".join(kind.value for kind in ChartKind if kind is not ChartKind.NONE)


def build_research_prompt(topic: str, audience: Audience) -> str:
    return (
        f'Conduct thorough research on the topic: "{topic}".\n'
        "Focus on finding recent, verifiable statistics, data trends, and key facts "
        f"that would appeal to a {audience.value} audience.\n"
        "Provide a comprehensive summary of the findings including specific numbers "
        "and dates where available."
    )


def build_structuring_prompt(research_text: str, audience: Audience) -> str:
    return (
        "Analyze the following research text and extract structured data for a "
        f"visual presentation tailored to {audience.value}.\n\n"
        "Research Text:\n"
        '"""\n'
        f"{research_text}\n"
        '"""\n\n'
        "Requirements:\n"
        f'1. Create a "summary" of the research (max {SUMMARY_MAX_WORDS} words).\n'
        f"2. Identify the best chart type ({_CHART_KINDS}) to represent the key "
        "statistics found. If no stats are found, use 'none'.\n"
        "3. Provide \"chartData\" as an ordered list of points with 'name' and "
        "'value' fields for the chart.\n"
        '4. A "chartTitle", plus "chartXAxis" and "chartYAxis" labels where they apply.\n'
        '5. A creative "imagePrompt" to generate a high-quality, modern, abstract or '
        "illustrative header image representing this topic.\n\n"
        "Output JSON only."
    )


__all__ = ["build_research_prompt", "build_structuring_prompt"]

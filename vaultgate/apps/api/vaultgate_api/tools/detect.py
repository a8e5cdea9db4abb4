"""Skyflow Detect tools: deidentify and reidentify.

Both tools are declared with protocol-level arguments only. The tenant's
client is looked up from the ambient request context at call time.
"""

from vaultgate_api.context import RequestContextScope
from vaultgate_api.errors import DomainError
from vaultgate_api.schemas import (
    DeidentifiedEntity,
    DeidentifyInput,
    DeidentifyOutput,
    ReidentifyInput,
    ReidentifyOutput,
)
from vaultgate_api.tools.entities import partition_entities
from vaultgate_api.tools.registry import HandlerRegistry

DEIDENTIFY_DESCRIPTION = (
    "Deidentify sensitive information in strings using Skyflow. This tool accepts a "
    "string and returns another string, but with placeholders for sensitive data. "
    "The placeholders tell you what they are replacing. For example, a credit card "
    "number might be replaced with [CREDIT_CARD]."
)

REIDENTIFY_DESCRIPTION = (
    "Reidentify previously redacted sensitive information in strings using Skyflow. "
    "This tool accepts a string with redacted placeholders (like [CREDIT_CARD]) and "
    "returns the original sensitive data."
)


async def deidentify(params: DeidentifyInput) -> DeidentifyOutput:
    entities = None
    if params.entities is not None:
        entities, unknown = partition_entities(params.entities)
        if unknown:
            raise DomainError(
                f"Invalid entity type(s): {', '.join(unknown)}",
                details={"invalid_entities": unknown},
            )

    ctx = RequestContextScope.lookup()
    result = await ctx.client.deidentify_text(params.input_string, entities=entities)

    return DeidentifyOutput(
        processed_text=result.processed_text,
        word_count=result.word_count,
        char_count=result.char_count,
        entities=[
            DeidentifiedEntity(token=entity.token, entity_type=entity.entity_type)
            for entity in result.entities
        ],
    )


async def reidentify(params: ReidentifyInput) -> ReidentifyOutput:
    ctx = RequestContextScope.lookup()
    result = await ctx.client.reidentify_text(params.input_string)
    return ReidentifyOutput(processed_text=result.processed_text)


def register_detect_tools(registry: HandlerRegistry) -> None:
    """Register the Detect tools on a registry."""
    registry.tool(
        "deidentify",
        title="Skyflow Deidentify Tool",
        description=DEIDENTIFY_DESCRIPTION,
        input_model=DeidentifyInput,
        output_model=DeidentifyOutput,
    )(deidentify)

    registry.tool(
        "reidentify",
        title="Skyflow Reidentify Tool",
        description=REIDENTIFY_DESCRIPTION,
        input_model=ReidentifyInput,
        output_model=ReidentifyOutput,
    )(reidentify)

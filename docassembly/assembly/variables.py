"""Guide variable parsing and merging with submitted answers."""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from typing import Any

from docassembly.assembly.models import Variable, VariableSource

logger = logging.getLogger(__name__)


def parse_guide_variables(xml: str) -> list[Variable]:
    """Read the variables declared in a guide XML document.

    Variables live under ``<VARIABLES>`` as ``<VARIABLE NAME="..">`` elements.
    A declared default is taken from the ``VALUE`` attribute, or from the
    element text when the attribute is absent.

    Args:
        xml: The guide XML source.

    Returns:
        Declared variables in document order. Elements without a name are skipped.

    Raises:
        ValueError: If the XML cannot be parsed.
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise ValueError(f"Invalid guide XML: {e}") from e

    variables: list[Variable] = []
    for element in root.iter():
        if element.tag.upper() != "VARIABLE":
            continue
        attributes = {key.upper(): value for key, value in element.attrib.items()}
        name = (attributes.get("NAME") or "").strip()
        if not name:
            logger.debug("Skipping guide variable without a name")
            continue
        value = attributes.get("VALUE")
        if value is None and element.text and element.text.strip():
            value = element.text.strip()
        variables.append(Variable(name=name, value=value, source=VariableSource.GUIDE))

    return variables


def index_variables(variables: Iterable[Variable]) -> dict[str, Variable]:
    """Map lowercase variable names to variables; later declarations win."""
    return {variable.key: variable for variable in variables}


def merge_guide_variables_with_answers(
    guide_variables: Mapping[str, Variable],
    answers: Mapping[str, Any],
) -> dict[str, Any]:
    """Merge guide-declared variables with submitted answers.

    Answers override guide defaults for the same name, compared without
    regard to case. Guide variables with no answer keep their declared value.

    Args:
        guide_variables: Guide variables keyed by name.
        answers: Submitted answer values keyed by variable name.

    Returns:
        Merged values keyed by lowercase variable name.
    """
    merged: dict[str, Any] = {
        variable.key: variable.value for variable in guide_variables.values()
    }
    for name, value in answers.items():
        merged[name.lower()] = value
    return merged

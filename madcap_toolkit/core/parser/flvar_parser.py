from __future__ import annotations

"""Parser for MadCap ``.flvar`` variable-set files.

A variable set looks like::

    <CatapultVariableSet>
      <Variable Name="ProductName" EvaluatedDefinition="Acme">Acme</Variable>
    </CatapultVariableSet>

Values are taken from the first non-empty source in priority order:
``EvaluatedDefinition`` attribute, ``Definition`` child, element text,
``Definition`` attribute.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from lxml import etree as ET

from madcap_toolkit.core.exceptions import VariableSetError
from madcap_toolkit.core.models import VariableSet

__all__ = ["parse_flvar"]

logger = logging.getLogger(__name__)


def _local(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return ET.QName(tag).localname


def _variable_value(variable: ET._Element) -> Optional[str]:
    evaluated = variable.get("EvaluatedDefinition")
    if evaluated and evaluated.strip():
        return evaluated.strip()

    for child in variable:
        if _local(child.tag) == "Definition":
            text = "".join(child.itertext()).strip()
            if text:
                return text

    text = (variable.text or "").strip()
    if text:
        return text

    definition = variable.get("Definition")
    if definition and definition.strip():
        return definition.strip()
    return None


def parse_flvar(content: str | bytes, source_path: Path) -> VariableSet:
    """Parse FLVAR *content* into a :class:`VariableSet`.

    Variables are keyed ``<file stem>.<Name>``.  Variables without a usable
    value are skipped.

    Raises
    ------
    VariableSetError
        If *content* is not well-formed enough to recover a root element.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    parser = ET.XMLParser(recover=True, resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = ET.fromstring(content, parser=parser)
    except (ET.XMLSyntaxError, ValueError) as exc:
        raise VariableSetError(f"Invalid variable set: {exc}", source_path, exc) from exc
    if root is None:
        raise VariableSetError("Variable set has no root element", source_path)

    namespace = source_path.stem
    variables: Dict[str, str] = {}
    for el in root.iter():
        if _local(el.tag) != "Variable":
            continue
        name = (el.get("Name") or "").strip()
        if not name:
            continue
        value = _variable_value(el)
        if value is None:
            logger.debug("Variable %s.%s has no value", namespace, name)
            continue
        variables[f"{namespace}.{name}"] = value

    return VariableSet(source_path=source_path, variables=variables)

"""
Replaces one value inside one section occurrence of a YAML document.
"""
from typing import Dict, List, Optional, Tuple
import logging

import yaml

from ..core.models import PatchTarget
from ..core.exceptions import MalformedDocument
from .document import StructuredDocument, Section, is_alias
from .renderer import render_scalar, is_plain_safe


BLOCK_STYLES = ('|', '>')


class DocumentPatcher:
    """
    Patches a field of the N-th (by default the first) section of a given
    name, leaving every other byte of the document as it was.

    Application images come first in values files, dependency images
    (databases, brokers) later. Only the resolved occurrence is ever
    edited; if it lacks the field the patch fails instead of moving on to
    the next section.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def patch(
        self,
        doc: StructuredDocument,
        target: PatchTarget,
        new_value: str
    ) -> StructuredDocument:
        """
        Replace the value at ``target``.

        Args:
            doc: Document to patch (not modified)
            target: Section name, occurrence and field to replace
            new_value: New scalar value

        Returns:
            New document; ``doc`` itself when the value is already current

        Raises:
            TargetNotFound: If the occurrence or its field does not exist
            MalformedDocument: If the document cannot be parsed or the
                value cannot be replaced in place
        """
        return self.patch_fields(doc, target.section, {target.field: new_value}, target.occurrence)

    def patch_fields(
        self,
        doc: StructuredDocument,
        section_name: str,
        values: Dict[str, str],
        occurrence: int = 0
    ) -> StructuredDocument:
        """
        Replace several fields of one section occurrence, all or nothing.

        Args:
            doc: Document to patch (not modified)
            section_name: Section key, e.g. ``image``
            values: Field name to new value
            occurrence: Index of the section among same-named sections

        Returns:
            New document; ``doc`` itself when every value is already current
        """
        section = doc.find_section(section_name, occurrence)
        if section.aliased:
            raise MalformedDocument(
                f"section '{section_name}' at line {section.line} is an alias "
                f"and cannot be patched in place",
                doc.source
            )
        if doc.is_shared(section.value_node):
            raise MalformedDocument(
                f"section '{section_name}' at line {section.line} is referenced "
                f"through an alias elsewhere and cannot be patched in place",
                doc.source
            )

        edits: List[Tuple[int, int, str]] = []
        for field_name, new_value in values.items():
            key_node, value_node = doc.resolve_field(section, field_name)
            edit = self._plan_edit(doc, section, field_name, key_node, value_node, new_value)
            if edit is not None:
                edits.append(edit)

        if not edits:
            self.logger.debug(
                f"{doc.source or 'document'}: {section_name}[{occurrence}] already up to date"
            )
            return doc

        patched = doc.replace_spans(edits)
        self.logger.info(
            f"Patched {doc.source or 'document'}: {section_name}[{occurrence}] "
            f"line {section.line}, fields={sorted(values)}"
        )
        return patched

    def _plan_edit(
        self,
        doc: StructuredDocument,
        section: Section,
        field_name: str,
        key_node: yaml.Node,
        value_node: yaml.Node,
        new_value: str
    ) -> Optional[Tuple[int, int, str]]:
        """
        Work out the text substitution for one field.

        Returns:
            ``(start, end, replacement)`` or None when no change is needed
        """
        where = f"{section.name}[{section.occurrence}].{field_name} (line {key_node.start_mark.line + 1})"

        if not isinstance(value_node, yaml.ScalarNode):
            raise MalformedDocument(f"{where} is not a scalar value", doc.source)
        if is_alias(key_node, value_node):
            raise MalformedDocument(f"{where} is an alias", doc.source)
        if value_node.style in BLOCK_STYLES:
            raise MalformedDocument(f"{where} is a block scalar", doc.source)

        start = value_node.start_mark.index
        end = value_node.end_mark.index
        current_text = doc.text[start:end]
        if current_text[:1] in ('&', '!'):
            raise MalformedDocument(f"{where} carries an anchor or tag", doc.source)

        if start == end:
            # Empty value: "tag:" followed by nothing
            if doc.text[start - 1:start] != ':':
                raise MalformedDocument(f"{where} has no ':' value indicator", doc.source)
            if new_value == '':
                return None
            return start, end, ' ' + render_scalar(new_value, None)

        if value_node.value == new_value:
            # A plain scalar such as 1.10 resolves to another type
            if value_node.style in ('"', "'") or is_plain_safe(new_value):
                return None

        return start, end, render_scalar(new_value, value_node.style)

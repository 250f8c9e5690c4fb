"""Filesystem storage strategy.

Reads guides and templates from per-user directories::

    <data_dir>/<username>/templates.json                 index of {guideId, templateId}
    <data_dir>/<username>/guides/Guide<gid>/Guide.xml     guide definition
    <data_dir>/<username>/guides/Guide<gid>/template<tid>.json
    <data_dir>/<username>/guides/Guide<gid>/template<tid>.pdf
"""

import asyncio
import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from docassembly.assembly.models import Template, Variable
from docassembly.assembly.tempfiles import temporary_pdf_path
from docassembly.assembly.variables import index_variables, parse_guide_variables
from docassembly.core.exceptions import ClientInputError, UpstreamFetchError
from docassembly.interfaces.store import BasePdfStorage, BaseTemplateStore

logger = logging.getLogger(__name__)

_SAFE_COMPONENT = re.compile(r"^[A-Za-z0-9_.@-]+$")


def _safe_component(value: str, label: str) -> str:
    value = str(value)
    if not _SAFE_COMPONENT.match(value) or value in {".", ".."}:
        raise ClientInputError(f"Invalid {label}: {value!r}")
    return value


class UserFileLayout:
    """Resolves the paths of a user's guide and template files."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    def user_dir(self, username: str) -> Path:
        return self._data_dir / _safe_component(username, "username")

    def index_path(self, username: str) -> Path:
        return self.user_dir(username) / "templates.json"

    def guide_dir(self, username: str, guide_id: str) -> Path:
        return self.user_dir(username) / "guides" / f"Guide{_safe_component(guide_id, 'guide id')}"

    def guide_xml_path(self, username: str, guide_id: str) -> Path:
        return self.guide_dir(username, guide_id) / "Guide.xml"

    def template_path(self, username: str, guide_id: str, template_id: str) -> Path:
        template_id = _safe_component(template_id, "template id")
        return self.guide_dir(username, guide_id) / f"template{template_id}.json"

    def template_pdf_path(self, username: str, guide_id: str, template_id: str) -> Path:
        template_id = _safe_component(template_id, "template id")
        return self.guide_dir(username, guide_id) / f"template{template_id}.pdf"

    async def read_index(self, username: str) -> list[dict[str, Any]]:
        """Read the user's template index; a user without one has no templates."""
        path = self.index_path(username)
        if not path.exists():
            logger.info(f"No template index for user {username}")
            return []
        entries = await _read_json(path)
        if not isinstance(entries, list):
            raise UpstreamFetchError(f"Template index {path} is not a list")
        return [entry for entry in entries if isinstance(entry, dict)]


async def _read_json(path: Path) -> Any:
    try:
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return json.loads(text)
    except FileNotFoundError as e:
        raise UpstreamFetchError(f"File not found: {path.name}") from e
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read {path}: {e}")
        raise UpstreamFetchError(f"Could not read {path.name}: {e}") from e


class FileTemplateStore(BaseTemplateStore):
    """Template and guide variable store backed by JSON and XML files."""

    def __init__(self, layout: UserFileLayout) -> None:
        self._layout = layout

    async def _load_template(self, username: str, guide_id: str, template_id: str) -> Template:
        path = self._layout.template_path(username, guide_id, template_id)
        data = await _read_json(path)
        if not isinstance(data, dict):
            raise UpstreamFetchError(f"Template file {path.name} is not an object")

        data.setdefault("templateId", template_id)
        data.setdefault("guideId", guide_id)
        try:
            return Template.model_validate(data)
        except ValidationError as e:
            raise UpstreamFetchError(f"Template {template_id} is invalid: {e}") from e

    async def get_templates_for_guide(self, username: str, guide_id: str) -> list[Template]:
        entries = await self._layout.read_index(username)
        template_ids = [
            str(entry["templateId"])
            for entry in entries
            if "templateId" in entry and str(entry.get("guideId")) == str(guide_id)
        ]

        templates = await asyncio.gather(
            *(self._load_template(username, guide_id, tid) for tid in template_ids)
        )
        active = [template for template in templates if template.active]

        logger.info(
            f"Loaded {len(active)} active of {len(templates)} templates "
            f"for guide {guide_id} (user {username})"
        )
        return active

    async def get_template(self, username: str, guide_id: str, template_id: str) -> Template:
        return await self._load_template(username, guide_id, template_id)

    async def get_guide_variables(self, username: str, guide_id: str) -> dict[str, Variable]:
        path = self._layout.guide_xml_path(username, guide_id)
        if not path.exists():
            return {}

        try:
            xml = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return index_variables(parse_guide_variables(xml))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read guide variables from {path}: {e}")
            raise UpstreamFetchError(f"Could not read variables of guide {guide_id}: {e}") from e


class FilePdfStorage(BasePdfStorage):
    """Copies stored PDF templates into the temporary directory."""

    def __init__(self, layout: UserFileLayout, temp_dir: Path) -> None:
        self._layout = layout
        self._temp_dir = temp_dir

    async def _guide_of(self, username: str, template_id: str) -> str:
        for entry in await self._layout.read_index(username):
            if str(entry.get("templateId")) == str(template_id) and "guideId" in entry:
                return str(entry["guideId"])
        raise UpstreamFetchError(f"Template {template_id} is not in the index of {username}")

    async def duplicate_template_pdf(
        self, username: str, template_id: str, guide_id: str | None = None
    ) -> Path:
        if not guide_id:
            guide_id = await self._guide_of(username, template_id)
        source = self._layout.template_pdf_path(username, guide_id, template_id)
        target = temporary_pdf_path(self._temp_dir)

        try:
            await asyncio.to_thread(shutil.copyfile, source, target)
        except FileNotFoundError as e:
            raise UpstreamFetchError(f"PDF for template {template_id} not found") from e
        except OSError as e:
            target.unlink(missing_ok=True)
            logger.error(f"Failed to copy {source}: {e}")
            raise UpstreamFetchError(f"Could not copy PDF for template {template_id}: {e}") from e

        logger.debug(f"Duplicated template {template_id} PDF to {target}")
        return target

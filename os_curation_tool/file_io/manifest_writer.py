# Copyright 2025 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Build manifest rendering through Jinja2 templates."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .. import TEMPLATE_FORMAT_VERSION, __version__
from ..models.document import ImageTemplate, RepositoryConfig, SystemConfigBlock
from ..models.package import PackageInfo, ResolutionResult

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
MANIFEST_TEMPLATE = "manifest.yaml.jinja2"


def tojson_filter(value):
    """Jinja2 filter emitting a JSON scalar/collection, which is also valid YAML."""
    return json.dumps(value, ensure_ascii=False)


class ManifestWriter:
    """Render resolved templates into build-ready YAML manifests."""

    def __init__(self, template_dir: str | list[str] | None = None):
        if template_dir is None:
            template_dirs = [str(DEFAULT_TEMPLATE_DIR)]
        elif isinstance(template_dir, str):
            template_dirs = [template_dir]
        else:
            template_dirs = list(template_dir)

        self.template_dirs = template_dirs
        self.env = Environment(
            loader=FileSystemLoader(self.template_dirs),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            newline_sequence="\n",
            autoescape=False,
            undefined=StrictUndefined,
        )
        self.env.filters["tojson"] = tojson_filter

    def render(
        self,
        template: ImageTemplate,
        resolution: ResolutionResult,
        repository: Optional[RepositoryConfig] = None,
    ) -> str:
        def resolved_packages(block: SystemConfigBlock) -> List[PackageInfo]:
            return [resolution.resolved[name] for name in block.packages if name in resolution.resolved]

        return self.env.get_template(MANIFEST_TEMPLATE).render(
            tool_version=__version__,
            schema_version=TEMPLATE_FORMAT_VERSION,
            template=template,
            repository=repository,
            resolved_packages=resolved_packages,
            unresolved=sorted(resolution.unresolved),
        )

    def write(
        self,
        output_path: str | os.PathLike,
        template: ImageTemplate,
        resolution: ResolutionResult,
        repository: Optional[RepositoryConfig] = None,
    ) -> Path:
        content = self.render(template, resolution, repository)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote manifest for {template.name} to {path}")
        return path

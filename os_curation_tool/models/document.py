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

"""Document kinds and typed views over validated documents.

The ``from_dict`` constructors expect data that has already passed schema
validation; they do not re-check required fields.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import DocumentKindError, ValidationError
from .package import Ecosystem


class DocumentKind(str, Enum):
    """Document kinds, each backed by its own schema family."""

    COMPOSER_LEGACY = "composer"
    IMAGE_TEMPLATE = "image_template"
    GLOBAL_CONFIG = "global_config"

    @classmethod
    def from_name(cls, name: str) -> "DocumentKind":
        for kind in cls:
            if name in (kind.value, kind.name, kind.name.lower()):
                return kind
        raise DocumentKindError(
            f"Unknown document kind '{name}'. Valid kinds: {[k.value for k in cls]}"
        )


_TEMPLATE_KEYS = frozenset({"image", "target", "systemConfigs"})
_LEGACY_KEYS = frozenset({"distro", "arch"})
_CONFIG_KEYS = frozenset({"workers", "cache_dir", "work_dir", "temp_dir", "repositories", "timeouts", "logging"})


def detect_document_kind(data: Any) -> DocumentKind:
    """Guess the document kind from its top-level fields.

    Raises:
        DocumentKindError: If the fields match no known kind.
    """
    if not isinstance(data, dict):
        raise DocumentKindError("Document root must be a mapping/object")

    keys = set(data)
    if keys & _TEMPLATE_KEYS:
        return DocumentKind.IMAGE_TEMPLATE
    if "packages" in keys and keys & _LEGACY_KEYS:
        return DocumentKind.COMPOSER_LEGACY
    if keys & _CONFIG_KEYS:
        return DocumentKind.GLOBAL_CONFIG
    raise DocumentKindError(
        f"Unable to detect document kind from top-level fields: {sorted(keys)}"
    )


@dataclass(frozen=True)
class KernelConfig:
    version: str
    cmdline: str = ""


@dataclass(frozen=True)
class SystemConfigBlock:
    name: str
    packages: Tuple[str, ...]
    description: str = ""
    kernel: Optional[KernelConfig] = None


@dataclass(frozen=True)
class ImageTemplate:
    """Validated image template."""

    name: str
    version: str
    os: str
    dist: str
    arch: str
    image_type: str
    system_configs: Tuple[SystemConfigBlock, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageTemplate":
        image = data["image"]
        target = data["target"]
        blocks = []
        for block in data["systemConfigs"]:
            kernel = block.get("kernel")
            blocks.append(
                SystemConfigBlock(
                    name=block["name"],
                    packages=tuple(block.get("packages", [])),
                    description=block.get("description", ""),
                    kernel=KernelConfig(kernel["version"], kernel.get("cmdline", "")) if kernel else None,
                )
            )
        return cls(
            name=image["name"],
            version=image["version"],
            os=target["os"],
            dist=target["dist"],
            arch=target["arch"],
            image_type=target["imageType"],
            system_configs=tuple(blocks),
        )

    @classmethod
    def from_legacy(cls, data: Dict[str, Any]) -> "ImageTemplate":
        """Build a template from a legacy composer document.

        The flat package list becomes a single system config named after
        the image.
        """
        kernel = data.get("kernel")
        block = SystemConfigBlock(
            name=data["name"],
            packages=tuple(pkg["name"] for pkg in data["packages"]),
            description=data.get("description", ""),
            kernel=KernelConfig(kernel["version"], kernel.get("cmdline", "")) if kernel else None,
        )
        return cls(
            name=data["name"],
            version=data["version"],
            os=data.get("os", ""),
            dist=data["distro"],
            arch=data["arch"],
            image_type=data.get("imageType", "raw"),
            system_configs=(block,),
        )

    def package_names(self) -> List[str]:
        """All requested packages across system configs, first-seen order."""
        return list(dict.fromkeys(name for block in self.system_configs for name in block.packages))


@dataclass(frozen=True)
class RepositoryConfig:
    name: str
    url: str
    index_href: str
    ecosystem: Ecosystem
    username_env: Optional[str] = None
    password_env: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryConfig":
        return cls(
            name=data["name"],
            url=data["url"],
            index_href=data["indexHref"],
            ecosystem=Ecosystem.from_name(data["ecosystem"]),
            username_env=data.get("usernameEnv"),
            password_env=data.get("passwordEnv"),
        )

    def credentials(self) -> Optional[Tuple[str, str]]:
        """Read basic-auth credentials from the referenced environment variables."""
        if not self.username_env:
            return None
        username = os.getenv(self.username_env)
        if username is None:
            return None
        password = os.getenv(self.password_env, "") if self.password_env else ""
        return username, password


@dataclass(frozen=True)
class GlobalConfig:
    """Validated global tool configuration."""

    workers: int
    cache_dir: str
    work_dir: str
    temp_dir: str
    log_level: Optional[str] = None
    download_timeout: Optional[float] = None
    repositories: Tuple[RepositoryConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobalConfig":
        return cls(
            workers=data["workers"],
            cache_dir=data["cache_dir"],
            work_dir=data["work_dir"],
            temp_dir=data["temp_dir"],
            log_level=data.get("logging", {}).get("level"),
            download_timeout=data.get("timeouts", {}).get("download"),
            repositories=tuple(RepositoryConfig.from_dict(r) for r in data.get("repositories", [])),
        )

    def repository(self, name: Optional[str] = None) -> RepositoryConfig:
        """Look up a repository by name; with no name, the only/first one."""
        if not self.repositories:
            raise ValidationError("No repositories configured")
        if name is None:
            return self.repositories[0]
        for repo in self.repositories:
            if repo.name == name:
                return repo
        available = [repo.name for repo in self.repositories]
        raise ValidationError(f"Repository '{name}' not found. Available repositories: {available}")

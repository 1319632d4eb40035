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

"""Configuration management for the curation tool."""

import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path

from .models.document import GlobalConfig
from .utils.logging_utils import configure_split_stream_logging, level_from_name


def _default_temp_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "os-curation-tool")


@dataclass(frozen=True)
class CurationConfig:
    """Runtime settings for validation and resolution runs."""
    log_level: str = "INFO"
    print_level: str = "WARNING"
    temp_dir: str = field(default_factory=_default_temp_dir)
    download_timeout: float = 30.0
    keep_scratch: bool = False
    workers: int = 1

    @classmethod
    def from_env(cls) -> 'CurationConfig':
        """Create configuration from environment variables."""
        return cls(
            log_level=os.getenv('OS_CURATION_TOOL_LOG_LEVEL', 'INFO'),
            print_level=os.getenv('OS_CURATION_TOOL_PRINT_LEVEL', 'WARNING'),
            temp_dir=os.getenv('OS_CURATION_TOOL_TEMP_DIR') or _default_temp_dir(),
            download_timeout=float(os.getenv('OS_CURATION_TOOL_DOWNLOAD_TIMEOUT', '30')),
            keep_scratch=os.getenv('OS_CURATION_TOOL_KEEP_SCRATCH', 'false').lower() == 'true',
        )

    def apply_global_config(self, global_config: GlobalConfig) -> 'CurationConfig':
        """Return a copy overlaid with values from a validated global config."""
        overrides = {'temp_dir': global_config.temp_dir, 'workers': global_config.workers}
        if global_config.log_level:
            overrides['log_level'] = global_config.log_level.upper()
        if global_config.download_timeout is not None:
            overrides['download_timeout'] = float(global_config.download_timeout)
        return replace(self, **overrides)

    def set_logging(self) -> logging.Logger:
        """Setup logging based on configuration."""
        level = level_from_name(self.log_level, logging.INFO)
        stderr_level = level_from_name(self.print_level, logging.WARNING)

        formatter = logging.Formatter('%(name)s - %(levelname)s - %(message)s')
        configure_split_stream_logging(level=level, stderr_level=stderr_level, formatter=formatter)

        return logging.getLogger('os_curation_tool')


# Global configuration instance
curation_config = CurationConfig.from_env()

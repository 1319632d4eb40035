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

"""CLI entry point for validating documents and resolving image templates."""

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from .config import CurationConfig, curation_config
from .exceptions import CurationError, ValidationError
from .file_io import ManifestWriter
from .models.document import DocumentKind, GlobalConfig, ImageTemplate, RepositoryConfig
from .models.package import ResolutionResult
from .models.parsing import ValidationResult, document_loader, validate_document
from .repository import CancellationToken, Resolver

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = ('.json', '.yml', '.yaml')


def find_document_files(paths: List[str]) -> List[Path]:
    """Find all JSON/YAML documents in given paths."""
    files = []
    for path_str in paths:
        path = Path(path_str)

        if not path.exists():
            print(f"Warning: Path does not exist: {path}", file=sys.stderr)
            continue

        if path.is_file():
            files.append(path)
        elif path.is_dir():
            for ext in DOCUMENT_EXTENSIONS:
                files.extend(path.rglob(f'*{ext}'))
        else:
            print(f"Warning: Path is neither file nor directory: {path}", file=sys.stderr)

    return sorted(set(files))


def _validate_path(path: Path, kind: Optional[DocumentKind]) -> Tuple[Optional[ValidationResult], Optional[str]]:
    try:
        payload = document_loader.read_file(path)
        return validate_document(payload, kind=kind, source=str(path)), None
    except ValidationError as e:
        return None, str(e)


def run_validate(args: argparse.Namespace) -> int:
    files = find_document_files(args.paths)
    if not files:
        print("No documents found.", file=sys.stderr)
        return 1

    kind = DocumentKind.from_name(args.kind) if args.kind else None
    entries = []
    for path in files:
        result, error = _validate_path(path, kind)
        entries.append((path, result, error))

    if args.format == 'json':
        output = {
            'files': len(entries),
            'invalid': sum(1 for _, result, error in entries if error or not result.valid),
            'results': [
                {
                    'file': str(path),
                    'kind': result.kind.value if result else None,
                    'schemaVersion': str(result.schema_version) if result and result.schema_version else None,
                    'valid': error is None and result.valid,
                    'error': error,
                    'issues': [
                        {'path': i.path, 'message': i.message, 'line': i.line}
                        for i in (result.issues if result else ())
                    ],
                }
                for path, result, error in entries
            ],
        }
        print(json.dumps(output, indent=2))
    else:
        for path, result, error in entries:
            if error:
                print(f"\n{path}:\n  ERROR: {error}")
            elif not result.valid:
                print(f"\n{path} ({result.kind.value} {result.schema_version}):")
                for issue in result.issues:
                    line_info = f":{issue.line}" if issue.line is not None else ""
                    print(f"  ERROR{line_info}: {issue.path}: {issue.message}")

    failures = sum(1 for _, result, error in entries if error or not result.valid)
    if failures:
        return 1
    if args.format == 'human':
        print(f"Validated {len(entries)} document(s) with no errors.")
    return 0


def load_template(path: Path) -> ImageTemplate:
    """Validate a template or legacy composer document and build its typed view."""
    result = validate_document(document_loader.read_file(path), source=str(path))
    result.raise_for_issues()
    if result.kind == DocumentKind.IMAGE_TEMPLATE:
        return ImageTemplate.from_dict(result.document)
    if result.kind == DocumentKind.COMPOSER_LEGACY:
        return ImageTemplate.from_legacy(result.document)
    raise ValidationError(f"{path} is a {result.kind.value} document, expected an image template")


def load_global_config(path: Path) -> GlobalConfig:
    result = validate_document(
        document_loader.read_file(path), kind=DocumentKind.GLOBAL_CONFIG, source=str(path)
    )
    result.raise_for_issues()
    return GlobalConfig.from_dict(result.document)


def _resolve_one(
    resolver: Resolver, template: ImageTemplate, repository: RepositoryConfig, timeout: Optional[float]
) -> ResolutionResult:
    return resolver.resolve_template(template, repository, cancel=CancellationToken(timeout=timeout))


def run_resolve(args: argparse.Namespace, base_config: CurationConfig) -> int:
    global_config = load_global_config(Path(args.config))
    config = base_config.apply_global_config(global_config)
    if not (args.output or args.output_dir):
        # stdout carries the manifest
        config = replace(config, print_level='DEBUG')
    config.set_logging()
    repository = global_config.repository(args.repository)

    templates = [load_template(Path(p)) for p in args.templates]
    if args.output and len(templates) > 1:
        raise ValidationError("--output accepts a single template; use --output-dir for several")

    resolver = Resolver(config=config)
    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        futures = [pool.submit(_resolve_one, resolver, t, repository, args.timeout) for t in templates]
        results = [f.result() for f in futures]

    writer = ManifestWriter()
    incomplete = 0
    for template, result in zip(templates, results):
        if result.unresolved:
            incomplete += 1
            logger.warning(
                f"{template.name}: unresolved package(s): {', '.join(sorted(result.unresolved))}"
            )
        if args.output:
            writer.write(args.output, template, result, repository)
        elif args.output_dir:
            writer.write(Path(args.output_dir) / f"{template.name}-{template.version}.manifest.yaml", template, result, repository)
        else:
            sys.stdout.write(writer.render(template, result, repository))

    return 1 if incomplete and args.strict else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='os-curation-tool',
        description='Validate OS image templates and resolve their packages against repository indices',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    validate_parser = subparsers.add_parser('validate', help='Validate templates, legacy composer documents and configs')
    validate_parser.add_argument('paths', nargs='+', help='File paths or directories to validate')
    validate_parser.add_argument(
        '--kind',
        choices=[k.value for k in DocumentKind],
        default=None,
        help='Document kind (default: detected from top-level fields)',
    )
    validate_parser.add_argument(
        '--format',
        choices=['human', 'json'],
        default='human',
        help='Output format (default: human)',
    )

    resolve_parser = subparsers.add_parser('resolve', help='Resolve template packages into a build manifest')
    resolve_parser.add_argument('templates', nargs='+', help='Image template or legacy composer files')
    resolve_parser.add_argument('--config', required=True, help='Global configuration file')
    resolve_parser.add_argument('--repository', default=None, help='Repository name from the config (default: first)')
    output_group = resolve_parser.add_mutually_exclusive_group()
    output_group.add_argument('-o', '--output', default=None, help='Manifest output file (single template)')
    output_group.add_argument('--output-dir', default=None, help='Directory for one manifest per template')
    resolve_parser.add_argument('--timeout', type=float, default=None, help='Per-template deadline in seconds')
    resolve_parser.add_argument('--strict', action='store_true', help='Exit with 1 when packages are unresolved')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    curation_config.set_logging()

    try:
        if args.command == 'validate':
            code = run_validate(args)
        else:
            code = run_resolve(args, curation_config)
    except CurationError as e:
        logger.error(str(e))
        code = 1
    sys.exit(code)


if __name__ == '__main__':
    main()

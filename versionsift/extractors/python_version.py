"""Extractors detecting the Python version a project targets.

Each extractor is a pure function ``(content, filename) -> ExtractionResult``
that reports ``found=False`` rather than raising when a file is malformed
or doesn't mention a Python version.
"""

import configparser
import re
import tomllib
from typing import Any

from versionsift.models import ExtractionResult

VERSION_PATTERN = re.compile(r"(\d+\.\d+(?:\.\d+)?)")
_LEADING_VERSION = re.compile(r"^(\d+\.\d+(?:\.\d+)?)")
_SETUP_PY_REQUIRES = re.compile(r"""python_requires\s*=\s*['"]([^'"]+)['"]""")
_GITLAB_CI_IMAGE = re.compile(r"image:\s*python:(\d+\.\d+(?:\.\d+)?)")
_DOCKERFILE_FROM = re.compile(r"^FROM\s+python:(\d+\.\d+(?:\.\d+)?)")
_TOX_ENVLIST = re.compile(r"envlist\s*=\s*([^\n]+)")
_TOX_ENV = re.compile(r"py(\d)(\d+)")
_REQUIREMENTS_COMMENTS = [
    re.compile(r"#\s*[Pp]ython\s+(\d+\.\d+(?:\.\d+)?)"),
    re.compile(r"#\s*[Rr]equires\s+[Pp]ython\s*[><=]+\s*(\d+\.\d+(?:\.\d+)?)"),
    re.compile(r"#\s*[Pp]y\s*[><=]+\s*(\d+\.\d+(?:\.\d+)?)"),
]


def decode_content(content: bytes) -> str:
    """Decode file content as UTF-8, replacing undecodable bytes."""
    return content.decode("utf-8", errors="replace")


def extract_version(text: str) -> str | None:
    """Return the version at the start of a string ("3.11.5-slim" -> "3.11.5")."""
    match = _LEADING_VERSION.match(text.strip())
    return match.group(1) if match else None


def version_from_constraint(constraint: str) -> str | None:
    """Return the first version in a constraint ("^3.11", ">=3.10,<3.12" -> "3.10")."""
    match = VERSION_PATTERN.search(constraint.strip())
    return match.group(1) if match else None


def _strip_prefixes(text: str, prefixes: tuple[str, ...]) -> str:
    for prefix in prefixes:
        text = text.removeprefix(prefix)
    return text


def _load_toml(content: bytes) -> dict[str, Any] | None:
    try:
        return tomllib.loads(decode_content(content))
    except tomllib.TOMLDecodeError:
        return None


def parse_python_version_file(content: bytes, filename: str) -> ExtractionResult:
    """Read a .python-version file ("3.11", "3.11.5", "python-3.11.5")."""
    text = _strip_prefixes(decode_content(content).strip(), ("python-", "Python-", "py"))
    version = extract_version(text)
    if not version:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=1.0,
        raw_value=text,
        metadata={"source_type": "explicit_version_file"},
    )


def parse_runtime_txt(content: bytes, filename: str) -> ExtractionResult:
    """Read a Heroku runtime.txt ("python-3.11.5")."""
    raw = decode_content(content)
    version = extract_version(_strip_prefixes(raw.strip(), ("python-", "Python-")))
    if not version:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.95,
        raw_value=raw,
        metadata={"source_type": "heroku_runtime"},
    )


def parse_setup_py(content: bytes, filename: str) -> ExtractionResult:
    """Find ``python_requires`` in a setup.py."""
    match = _SETUP_PY_REQUIRES.search(decode_content(content))
    if not match:
        return ExtractionResult.not_found()

    constraint = match.group(1)
    version = version_from_constraint(constraint)
    if not version:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.9,
        raw_value=constraint,
        metadata={"source_type": "setup_py", "constraint": constraint},
    )


def parse_pipfile(content: bytes, filename: str) -> ExtractionResult:
    """Read ``[requires]`` from a Pipfile, preferring python_full_version."""
    data = _load_toml(content)
    requires = data.get("requires") if data else None
    if not isinstance(requires, dict):
        return ExtractionResult.not_found()

    version_str = requires.get("python_full_version") or requires.get("python_version")
    if not isinstance(version_str, str):
        return ExtractionResult.not_found()

    version = extract_version(version_str)
    if not version:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.9,
        raw_value=version_str,
        metadata={"source_type": "pipfile", "format": "pipenv"},
    )


def _pep621_result(project: dict[str, Any], filename: str) -> ExtractionResult | None:
    constraint = project.get("requires-python")
    if not isinstance(constraint, str):
        return None
    version = version_from_constraint(constraint)
    if not version:
        return None

    metadata = {"format": "PEP621", "constraint": constraint}
    dependencies = project.get("dependencies") or []
    if dependencies:
        metadata["dependency_count"] = str(len(dependencies))
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.9,
        raw_value=constraint,
        metadata=metadata,
    )


def _poetry_result(poetry: dict[str, Any], filename: str) -> ExtractionResult | None:
    dependencies = poetry.get("dependencies")
    if not isinstance(dependencies, dict):
        return None

    python_dep = dependencies.get("python")
    # Either python = "^3.11" or python = { version = "^3.11" }
    if isinstance(python_dep, dict):
        python_dep = python_dep.get("version")
    if not isinstance(python_dep, str) or not python_dep:
        return None

    version = version_from_constraint(python_dep)
    if not version:
        return None

    metadata = {"format": "Poetry", "constraint": python_dep}
    dependency_count = len(dependencies) - 1
    if dependency_count > 0:
        metadata["dependency_count"] = str(dependency_count)
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.9,
        raw_value=python_dep,
        metadata=metadata,
    )


def parse_pyproject_toml(content: bytes, filename: str) -> ExtractionResult:
    """Read the Python constraint from pyproject.toml.

    PEP 621 ``[project] requires-python`` (also used by PDM) is checked
    first, then Poetry's ``[tool.poetry.dependencies] python``.
    """
    data = _load_toml(content)
    if data is None:
        return ExtractionResult.not_found()

    project = data.get("project")
    if isinstance(project, dict):
        result = _pep621_result(project, filename)
        if result:
            return result

    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict):
        result = _poetry_result(poetry, filename)
        if result:
            return result

    return ExtractionResult(found=False, source=filename)


def parse_requirements_txt(content: bytes, filename: str) -> ExtractionResult:
    """Find a Python version mentioned in requirements.txt comments."""
    for line in decode_content(content).splitlines():
        for pattern in _REQUIREMENTS_COMMENTS:
            match = pattern.search(line)
            if match:
                return ExtractionResult(
                    found=True,
                    value=match.group(1),
                    source=filename,
                    confidence=0.6,
                    raw_value=line,
                    metadata={"source_type": "requirements_comment"},
                )
    return ExtractionResult.not_found()


def parse_gitlab_ci(content: bytes, filename: str) -> ExtractionResult:
    """Find a ``image: python:X.Y`` in .gitlab-ci.yml."""
    match = _GITLAB_CI_IMAGE.search(decode_content(content))
    if not match:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=match.group(1),
        source=filename,
        confidence=0.75,
        raw_value=match.group(0),
        metadata={"source_type": "gitlab_ci", "image": match.group(0)},
    )


def parse_dockerfile(content: bytes, filename: str) -> ExtractionResult:
    """Find the first ``FROM python:X.Y`` line of a Dockerfile."""
    for raw_line in decode_content(content).splitlines():
        line = raw_line.strip()
        match = _DOCKERFILE_FROM.match(line)
        if match:
            return ExtractionResult(
                found=True,
                value=match.group(1),
                source=filename,
                confidence=0.8,
                raw_value=line,
                metadata={"source_type": "dockerfile", "from_image": line},
            )
    return ExtractionResult.not_found()


def version_from_tox_env(envlist: str) -> str | None:
    """Convert the first pyXY env of a tox envlist to a version (py311 -> 3.11)."""
    match = _TOX_ENV.search(envlist)
    if not match:
        return None
    return f"{match.group(1)}.{match.group(2)}"


def _tox_envlist(text: str) -> str | None:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text)
    except configparser.Error:
        parser = None
    if parser is not None and parser.has_option("tox", "envlist"):
        return parser.get("tox", "envlist").strip()

    match = _TOX_ENVLIST.search(text)
    return match.group(1).strip() if match else None


def parse_tox_ini(content: bytes, filename: str) -> ExtractionResult:
    """Read the first pyXY environment from tox.ini's envlist."""
    envlist = _tox_envlist(decode_content(content))
    if not envlist:
        return ExtractionResult.not_found()

    version = version_from_tox_env(envlist)
    if not version:
        return ExtractionResult.not_found()
    return ExtractionResult(
        found=True,
        value=version,
        source=filename,
        confidence=0.7,
        raw_value=envlist,
        metadata={"source_type": "tox_ini", "envlist": envlist},
    )

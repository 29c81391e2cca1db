"""Factory for building rule registries and engines from settings."""

import logging

from versionsift.config import RulesSettings
from versionsift.extractors import python_version
from versionsift.extractors.factory import ExtractorFactories, default_extractor_factories
from versionsift.pipeline.rules import (
    Rule,
    RuleBuilder,
    RuleEngine,
    RuleParseError,
    RuleRegistry,
    load_rules_file,
)

logger = logging.getLogger(__name__)

_ONE_KB = 1024
_ONE_MB = 1024 * 1024


def python_version_file_rule() -> Rule:
    return (
        RuleBuilder("python-version-file")
        .description("Extracts Python version from .python-version file")
        .priority(1)
        .file_pattern(".python-version")
        .max_file_size(_ONE_KB)
        .extractor(python_version.parse_python_version_file)
        .tags("explicit", "version-file")
        .must_build()
    )


def runtime_txt_rule() -> Rule:
    return (
        RuleBuilder("runtime-txt")
        .description("Extracts Python version from runtime.txt (Heroku)")
        .priority(2)
        .file_pattern("runtime.txt")
        .required_content(r"python-?\d+\.\d+")
        .max_file_size(_ONE_KB)
        .extractor(python_version.parse_runtime_txt)
        .tags("explicit", "heroku", "deployment")
        .must_build()
    )


def setup_py_rule() -> Rule:
    return (
        RuleBuilder("setup-py")
        .description("Extracts Python version from setup.py")
        .priority(8)
        .file_pattern("setup.py")
        .required_content(r"python_requires")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_setup_py)
        .tags("config", "python", "packaging")
        .must_build()
    )


def pipfile_rule() -> Rule:
    return (
        RuleBuilder("pipfile")
        .description("Extracts Python version from Pipfile")
        .priority(9)
        .file_pattern("Pipfile")
        .required_content(r"python_version|python_full_version")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_pipfile)
        .tags("config", "pipenv", "dependencies")
        .must_build()
    )


def pyproject_toml_rule() -> Rule:
    return (
        RuleBuilder("pyproject-toml")
        .description("Extracts Python version from pyproject.toml (Poetry, PDM, PEP 621)")
        .priority(10)
        .file_pattern("pyproject.toml")
        .required_content(r"(requires-python|python\s*=)")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_pyproject_toml)
        .tags("config", "toml", "dependencies", "poetry", "pdm", "pep621")
        .must_build()
    )


def dockerfile_rule() -> Rule:
    return (
        RuleBuilder("dockerfile")
        .description("Extracts Python version from Dockerfile")
        .priority(11)
        .file_pattern("Dockerfile*")
        .required_content(r"FROM\s+python:")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_dockerfile)
        .tags("docker", "deployment", "container")
        .must_build()
    )


def gitlab_ci_rule() -> Rule:
    return (
        RuleBuilder("gitlab-ci")
        .description("Extracts Python version from .gitlab-ci.yml")
        .priority(12)
        .file_pattern(".gitlab-ci.yml")
        .required_content(r"image:\s*python:")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_gitlab_ci)
        .tags("ci", "gitlab", "docker")
        .must_build()
    )


def tox_ini_rule() -> Rule:
    return (
        RuleBuilder("tox-ini")
        .description("Extracts Python version from tox.ini")
        .priority(13)
        .file_pattern("tox.ini")
        .required_content(r"envlist")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_tox_ini)
        .tags("testing", "tox", "config")
        .must_build()
    )


def requirements_txt_rule() -> Rule:
    return (
        RuleBuilder("requirements-txt")
        .description("Extracts Python version from requirements.txt comments")
        .priority(15)
        .file_pattern("requirements*.txt")
        .required_content(r"[Pp]ython")
        .max_file_size(_ONE_MB)
        .extractor(python_version.parse_requirements_txt)
        .tags("dependencies", "comments", "inferred")
        .must_build()
    )


BUILTIN_RULE_BUILDERS = [
    python_version_file_rule,
    runtime_txt_rule,
    setup_py_rule,
    pipfile_rule,
    pyproject_toml_rule,
    dockerfile_rule,
    gitlab_ci_rule,
    tox_ini_rule,
    requirements_txt_rule,
]


def builtin_rules() -> list[Rule]:
    """Build a fresh copy of every built-in rule."""
    return [build() for build in BUILTIN_RULE_BUILDERS]


def register_builtin_rules(registry: RuleRegistry) -> None:
    """Add all built-in rules to an existing registry.

    Raises:
        RuleValidationError: If a built-in rule is rejected
    """
    for rule in builtin_rules():
        registry.register(rule)


def default_registry() -> RuleRegistry:
    """Create a new registry holding the built-in rules."""
    registry = RuleRegistry()
    for rule in builtin_rules():
        registry.must_register(rule)
    return registry


def _log_active_rules(registry: RuleRegistry) -> None:
    """Log the active rules for debugging."""
    rules = registry.list_enabled()
    if not rules:
        logger.warning("No rules enabled - nothing will be extracted")
        return

    logger.debug("Active rules:")
    for rule in rules:
        logger.debug(
            "  %s (priority=%d, pattern=%s, tags=%s)",
            rule.name,
            rule.priority,
            rule.condition.file_pattern or rule.condition.path_pattern,
            ",".join(rule.tags),
        )


def build_registry(
    settings: RulesSettings, extractors: ExtractorFactories | None = None
) -> RuleRegistry:
    """Build a registry from settings.

    Built-in rules are registered first, so a rules file can replace one
    by reusing its name.

    Raises:
        FileNotFoundError: If the configured rules file doesn't exist
        RuleParseError: If the rules file is invalid
    """
    registry = default_registry() if settings.include_builtin else RuleRegistry()

    if settings.rules_file:
        extractors = extractors or default_extractor_factories()
        try:
            load_rules_file(settings.rules_file).to_registry(extractors, registry)
        except (FileNotFoundError, RuleParseError) as e:
            logger.error("Failed to load rules file: %s", e)
            raise

    _log_active_rules(registry)
    return registry


def build_rule_engine(
    settings: RulesSettings, extractors: ExtractorFactories | None = None
) -> RuleEngine:
    """Build a rule engine over a registry assembled from settings."""
    return RuleEngine(build_registry(settings, extractors))

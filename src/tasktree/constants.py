"""Shared constants for tasktree."""

STATE_DIR_NAME = ".tasktree"
CONFIG_FILE = "config.yaml"
STATE_FILE = "state.yaml"
STATE_LOCK_FILE = "state.lock"
STATE_SCHEMA_VERSION = 1

DEFAULT_PROJECT_TITLE = "New Project"
DEFAULT_PROJECT_DESCRIPTION = "Get started with your first project"

CLONE_TITLE_SUFFIX = " (Clone)"
DEFAULT_SPAWN_TITLE = "New Task"

ORPHAN_POLICIES = ("orphan", "cascade", "reparent")
DEFAULT_ORPHAN_POLICY = "orphan"

DEFAULT_GENERATOR_KIND = "mock"
DEFAULT_GENERATOR_BASE_URL = "https://api.openai.com/v1"
DEFAULT_GENERATOR_MODEL = "gpt-4-turbo-preview"
DEFAULT_GENERATOR_TEMPERATURE = 0.7
DEFAULT_GENERATOR_TIMEOUT = 60.0
DEFAULT_GENERATOR_API_KEY_ENV = "OPENAI_API_KEY"

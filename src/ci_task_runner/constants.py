STATE_DIR_NAME = ".task_runner"
CONFIG_FILE = "config.yaml"
LOGS_DIR = "logs"
MARKER_DIR_NAME = ".task-runner"

DEFAULT_SANDBOX_DIR = "sandbox"
DEFAULT_JUNIT_DIR = "code/test-results"
DEFAULT_CODE_DIR = "code"
DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_COMMANDS = {
    "bootstrap": "yarn bootstrap --core",
    "publish": "yarn local-registry --publish",
    "smoke-test": "yarn storybook --smoke-test",
}

LOG_TAIL_CHARS = 2000

EXIT_OK = 0
EXIT_EXECUTION_ERROR = 1
EXIT_CONFIG_ERROR = 2

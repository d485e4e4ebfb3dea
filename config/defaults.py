PROJECT_NAME = "GameFeeder"
PROJECT_VERSION = "1.4.0"
PROJECT_URL = "https://github.com/TimJentzsch/GameFeeder"

DEFAULT_CONFIG_DIR = "config"
DEFAULT_DATA_DIR = "data"

API_CONFIG_FILE = "api_config.yml"
UPDATER_CONFIG_FILE = "updater_config.yml"
GAMES_DIR = "games"

SUBSCRIBER_DATA_FILE = "subscriber_data.json"
UPDATER_DATA_FILE = "updater_data.json"

DEFAULT_DISCORD_PREFIX = "!"
DEFAULT_TELEGRAM_PREFIX = "/"

DEFAULT_UPDATE_DELAY_SECONDS = 60
DEFAULT_UPDATE_LIMIT = 10
MIN_UPDATE_DELAY_SECONDS = 10

DISCORD_MAX_MESSAGE_LEN = 1900  # keep under 2000 hard limit
DISCORD_MAX_EMBED_DESCRIPTION = 2048
TELEGRAM_MAX_MESSAGE_LEN = 4096
TELEGRAM_MAX_NOTIFICATION_LEN = 2048

APP_NAME = "Gold Estimation App"
APP_VERSION = "1.4.0"
APP_TITLE = f"{APP_NAME} v{APP_VERSION}"

# Keep QSettings identifiers consistent to avoid breaking existing settings.
SETTINGS_ORG = "YourCompany"
SETTINGS_APP = "GoldEstimateApp"

# Default paths
DB_PATH = "database/gold_estimation.db"
LOG_DIR = "logs"

# Pricing defaults
DEFAULT_TAX_PERCENT = 3.0
RECENT_HISTORY_LIMIT = 10

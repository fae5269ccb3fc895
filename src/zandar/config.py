# config.py: settings for the start page.
# Everything overridable comes from the environment; the rest are constants
# shared by the store, the ordering engine and the backup codec.

import os

DATA_FILE = os.environ.get("ZANDAR_DATA_FILE", "zandar.json")
LOG_LEVEL = os.environ.get("ZANDAR_LOG_LEVEL", "INFO").upper()
FLASK_SECRET = os.environ.get("FLASK_SECRET", "dev-change-me")
HOST = os.environ.get("ZANDAR_HOST", "127.0.0.1")
PORT = int(os.environ.get("ZANDAR_PORT", "5000"))

COLLECTIONS = ("pages", "widgets", "links")
COLUMNS = (1, 2, 3)
DEFAULT_COLUMN = 1
DEFAULT_WIDGET_TITLE = "New Widget"

# Backup documents
BACKUP_VERSION = "1.0"
APP_IDENTIFIER = "Zandar"
FILE_PREFIX = "zandar-backup"
# en-US "MM/DD/YYYY, HH:MM:SS"; separators become dashes in file names
BACKUP_DATE_FORMAT = "%m/%d/%Y, %H:%M:%S"

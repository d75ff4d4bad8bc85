import os


APP_NAME = "job-status-listener"
JOB_UUID_PATTERN = (
    "[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
)
UPDATES_ROUTING_KEY = "jobs.updates"

DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_LISTEN_PORT = 60000
DEFAULT_PUBLISH_TIMEOUT = 5.0  # seconds
DEFAULT_RECONNECT_TIMEOUT = 10.0  # seconds

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_FILE_PATH = os.path.join(BASE_DIR, 'app.log')

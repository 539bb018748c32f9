APP_NAME = "Mentis Tutor API"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
	"http://localhost:5173",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

ANONYMOUS_USER_ID = "anonymous"
MAX_PROMPT_CHARS = 5000
MAX_ATTACHMENT_BYTES = 2 * 1024 * 1024
MAX_TOPIC_CHARS = 200
STREAM_CHUNK_CHARS = 80
MAX_SOURCE_CHARS = 50000

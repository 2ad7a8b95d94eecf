from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
import os

# Origins of the local web client dev servers
DEV_ORIGINS = (
	"http://localhost:5173",
	"http://127.0.0.1:5173",
	"http://localhost:3000",
	"http://127.0.0.1:3000",
)


def cors_origins() -> list[str]:
	"""CORS_ALLOW_ORIGINS (comma-separated); dev servers only outside production."""
	raw = os.getenv("CORS_ALLOW_ORIGINS", "")
	origins = [o.strip() for o in raw.split(",") if o.strip()]
	if origins:
		return origins
	if os.getenv("FLASK_ENV", "development").lower() == "production":
		return []
	return list(DEV_ORIGINS)


db = SQLAlchemy()
migrate = Migrate()
# The SPA sends the session cookie cross-origin, so credentials are allowed
cors = CORS(resources={r"/api/*": {"origins": cors_origins()}}, supports_credentials=True)

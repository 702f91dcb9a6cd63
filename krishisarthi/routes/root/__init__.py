# krishisarthi/routes/root/__init__.py

from flask import Blueprint

# Root / public-facing blueprint (service info + health)
root_bp = Blueprint("root", __name__)

# Import routes to attach them to this blueprint
from . import root_routes  # noqa: E402,F401

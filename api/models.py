# Models live in api.api_models; re-exported so Django finds them here too
from .api_models import *  # noqa: F401,F403

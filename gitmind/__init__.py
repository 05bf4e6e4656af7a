"""gitmind: explore, discuss and archive GitHub repositories with a generative model."""

from .controller import AppController
from .models import AppStatus

__all__ = ["AppController", "AppStatus"]

__version__ = "0.1.0"

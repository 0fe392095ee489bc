# flake8: noqa

from .constants import *
from .placeholders import placeholder

# flake8: noqa

from .artifacts import *
from .keys import *

"""
isort:skip_file
"""
from pytest import register_assert_rewrite

register_assert_rewrite("ethlinker.tests.utils")

from .fixtures import *  # noqa: F401,F403

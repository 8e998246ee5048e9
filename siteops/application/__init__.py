"""Application wiring."""

from siteops.application.context import AppContext, make_app_context

__all__ = ["AppContext", "make_app_context"]

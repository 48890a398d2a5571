"""Live session engine for timed workout flows.

Modules are imported directly, e.g. ``from liveworkout.controller import
start_live_session``; importing the package itself does not load Kivy.
"""

"""
SiteMark - site-survey photo annotation and upload.

This package contains the main application modules:
- core: Application core, photo queue and batch upload
- ui: Main window
- editor: Annotation model, tools, session and the editor UI
- services: Configuration, logging and photo upload
"""

__version__ = "0.1.0"

"""
linkdigest - content acquisition and transcript resolution for links

Turns a URL or local media file into budgeted text content, transcribing
audio/video through a chain of speech-to-text providers when needed.
"""

__version__ = "0.1.0"

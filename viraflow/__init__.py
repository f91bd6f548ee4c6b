"""
Video-to-copy app built with FastAPI, exposing
- an index.html UI,
- a video upload endpoint that sends the file to Gemini
  for transcription and social-media copy,
- and a WebSocket endpoint that streams the processing state to the page.
"""

__version__ = "0.2.0"

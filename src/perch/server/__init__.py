"""ASGI adapter: turns ASGI messages into perch requests and back."""

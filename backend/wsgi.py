# backend/wsgi.py
from maelza import create_app

app = create_app()

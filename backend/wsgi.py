# backend/wsgi.py
from solnet import create_app

app = create_app()

# backend/wsgi.py
from foamstock import create_app

app = create_app()

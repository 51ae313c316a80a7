# backend/wsgi.py
from pawnledger import create_app

app = create_app()

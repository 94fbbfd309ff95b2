# File: app/db/base.py
# Project: garapalika-api

from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass

# Overview: Flask extension instances shared by models, services and the app factory.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

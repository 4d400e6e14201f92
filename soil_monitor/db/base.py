from sqlalchemy.orm import declarative_base

# Shared declarative base for every table
Base = declarative_base()

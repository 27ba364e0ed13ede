# seed_widgets.py
from datetime import datetime

from sqlalchemy.orm import Session

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.widget import Widget

WIDGETS = [
    {"title": "Sprocket", "description": "Standard sprocket", "status": "published", "quantity": 12},
    {"title": "Flange", "description": None, "status": "draft", "quantity": 0},
    {"title": "Gasket", "description": "Rubber, 40mm", "status": "published", "quantity": 250},
]


def get_or_create_widget(db: Session, title: str, **fields) -> Widget:
    w = db.query(Widget).filter(Widget.title == title).one_or_none()
    if w:
        return w
    w = Widget(title=title, created_at=datetime.utcnow(), updated_at=datetime.utcnow(), **fields)
    db.add(w)
    db.commit()
    db.refresh(w)
    return w


def main():
    # dev convenience; real deployments run alembic upgrade head
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for row in WIDGETS:
            w = get_or_create_widget(db, **row)
            print(f"widget {w.id}: {w.title} -> rest_resource[widgets/{w.id}]")
    finally:
        db.close()


if __name__ == "__main__":
    main()

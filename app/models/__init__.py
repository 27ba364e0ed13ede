from app.models.widget import Widget

__all__ = ["Widget"]

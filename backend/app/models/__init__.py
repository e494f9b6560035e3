# Importing every model registers it with Base.metadata (Alembic, create_all)
from app.models.user import User
from app.models.post import Post
from app.models.comment import Comment
from app.models.like import Like
from app.models.file import File

__all__ = ["User", "Post", "Comment", "Like", "File"]

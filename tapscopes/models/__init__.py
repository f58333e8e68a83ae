from tapscopes.models.blog import Comment, Post, User  # noqa: F401

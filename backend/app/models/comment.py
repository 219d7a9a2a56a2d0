import uuid
from tortoise import fields, models


class Comment(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    content = fields.TextField()
    issue = fields.ForeignKeyField("models.Issue", related_name="comments", on_delete=fields.CASCADE)
    author = fields.ForeignKeyField("models.User", related_name="comments", on_delete=fields.RESTRICT)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "comments"

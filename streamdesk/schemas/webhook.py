from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class WebhookMessage(BaseModel):
    """Inbound ChatFlow event. Field names vary between ChatFlow payload versions."""

    remote_jid: str = Field(validation_alias=AliasChoices("remoteJid", "remote_jid", "jid", "sender"))
    message: Optional[str] = Field(default=None, validation_alias=AliasChoices("message", "text", "body"))
    from_me: bool = Field(default=False, validation_alias=AliasChoices("fromMe", "from_me"))
    message_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("messageId", "message_id", "id"))
    timestamp: Optional[int] = None


class WebhookResponse(BaseModel):
    success: bool
    message: str

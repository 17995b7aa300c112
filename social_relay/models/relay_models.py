from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict

class CamelModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> Dict:
        return self.model_dump(by_alias=True, exclude_none=True)

class PostChannels(BaseModel):
    """Channels selected for a post."""
    bluesky: bool = False
    threads: bool = False

    def selected(self) -> list:
        return [name for name in ("bluesky", "threads") if getattr(self, name)]

class PostCredentials(CamelModel):
    """Per-request credential overrides."""
    bluesky_identifier: Optional[str] = Field(None, alias="blueskyIdentifier")
    bluesky_app_password: Optional[str] = Field(None, alias="blueskyAppPassword")
    threads_user_id: Optional[str] = Field(None, alias="threadsUserId")
    threads_access_token: Optional[str] = Field(None, alias="threadsAccessToken")

class PostRequest(CamelModel):
    """Request model for relaying a post."""
    text: str = ""
    channels: PostChannels = Field(default_factory=PostChannels)
    credentials: Optional[PostCredentials] = None

    @field_validator("text", mode="before")
    @classmethod
    def default_text(cls, value):
        return "" if value is None else value

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

class ChannelResult(CamelModel):
    """Outcome of one attempted channel."""
    ok: bool
    message: str
    id: Optional[str] = None
    uri: Optional[str] = None

class PostResponse(CamelModel):
    """Response model for a relayed post."""
    results: Dict[str, ChannelResult] = Field(default_factory=dict)

class ConnectRequest(CamelModel):
    """Request model for validating a Threads access token."""
    access_token: Optional[str] = Field(None, alias="accessToken")

class ThreadsUser(CamelModel):
    id: str
    username: str

class ThreadsToken(CamelModel):
    """Access token obtained from an authorization code."""
    access_token: str = Field(alias="accessToken")
    api_version: str = Field(alias="apiVersion")
    is_long_lived: bool = Field(False, alias="isLongLived")
    expires_in: Optional[int] = Field(None, alias="expiresIn")

class TokenMeta(CamelModel):
    api_version: str = Field(alias="apiVersion")
    is_long_lived: bool = Field(alias="isLongLived")
    expires_in: Optional[int] = Field(None, alias="expiresIn")

    def to_json(self) -> Dict:
        # expiresIn is reported as null rather than omitted
        return self.model_dump(by_alias=True)

class OAuthResult(CamelModel):
    """Outcome of the Threads OAuth flow, handed to the browser once."""
    ok: bool
    message: Optional[str] = None
    error: Optional[str] = None
    access_token: Optional[str] = Field(None, alias="accessToken")
    user: Optional[ThreadsUser] = None
    token_meta: Optional[TokenMeta] = Field(None, alias="tokenMeta")

    @classmethod
    def failure(cls, error: str) -> "OAuthResult":
        return cls(ok=False, error=error)

    def to_json(self) -> Dict:
        data = super().to_json()
        if self.token_meta is not None:
            data["tokenMeta"] = self.token_meta.to_json()
        return data

class ThreadsPublishResult(CamelModel):
    creation_id: str = Field(alias="creationId")
    post_id: str = Field(alias="postId")
    api_version: str = Field(alias="apiVersion")

class BlueskyPostResult(CamelModel):
    uri: str
    cid: str

class DataDeletionResponse(BaseModel):
    """Response model for the data deletion callback."""
    url: str
    confirmation_code: str

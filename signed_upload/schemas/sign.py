from pydantic import BaseModel, ConfigDict, Field


class SignedUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_url: str = Field(alias="signedUrl")
    public_url: str = Field(alias="publicUrl")
    filename: str
    file_key: str = Field(alias="fileKey")

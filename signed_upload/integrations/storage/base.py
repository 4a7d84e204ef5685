class StorageSigningError(Exception):
    pass


class StorageProvider:
    name: str = "base"

    def sign_upload(self, object_key: str, mime_type: str) -> str:
        raise NotImplementedError

    def sign_download(self, object_key: str) -> str:
        raise NotImplementedError

from .upload_models import Upload, UploadStatus

__all__ = ["Upload", "UploadStatus"]

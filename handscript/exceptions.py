class HandscriptError(Exception):
    """Base for errors the analyze endpoint turns into a JSON error body."""

    status_code: int = 500
    public_message: str = "Failed to process image. Please try again."


class MissingImageError(HandscriptError):
    status_code = 400
    public_message = "No image uploaded"


class UploadTooLargeError(HandscriptError):
    status_code = 413
    public_message = "Image exceeds the 50 MB upload limit"


class InvalidImageError(HandscriptError):
    status_code = 400
    public_message = "Uploaded file is not a readable image"


class ImageTooLargeError(HandscriptError):
    """Raised when no (quality, width) attempt brings the image under budget."""

    status_code = 400
    public_message = "Image is too large to process. Please upload a smaller image."


class UpstreamError(HandscriptError):
    """Raised when the vision model call fails or returns an unusable reply."""

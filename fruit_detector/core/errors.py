class DetectorError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class TemplateLoadError(DetectorError):
    def __init__(self, template: str, message: str, details: dict | None = None):
        super().__init__('TEMPLATE_UNAVAILABLE', message, status_code=422, details={'template': template, **(details or {})})
        self.template = template

from fastapi import HTTPException

class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)

class ConflictError(HTTPException):
    """Raised when a suggestion has already been accepted or rejected"""
    def __init__(self, detail: str = "Suggestion already resolved"):
        super().__init__(status_code=409, detail=detail)

class UnknownEntityTypeError(HTTPException):
    def __init__(self, entity_type: str):
        super().__init__(status_code=400, detail=f"Unknown entity type: {entity_type}")
        self.entity_type = entity_type

class InvalidSuggestionDataError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)

from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder


def success_response(data=None, message="OK", status=200):
    """Flat success envelope: {"success": true, "message": ..., **data}."""
    content = {"success": True, "message": message}
    content.update(jsonable_encoder(data or {}))
    return JSONResponse(status_code=status, content=content)


def error_response(error_code, status=400, message="An error occurred", data=None):
    content = {"success": False, "code": error_code, "message": message}
    content.update(jsonable_encoder(data or {}))
    return JSONResponse(status_code=status, content=content)

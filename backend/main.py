# backend/main.py
import logging
from typing import Optional
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from auth import AUTH_SUCCESS_HTML, AuthorizationFlow, get_auth_flow
from config import get_client_url
from errors import AuthExchangeError, NotAuthenticatedError, UpstreamError
from models import AspectRatio, OAuthTokenSet
from session import read_session
from services.export_service import export_to_google
from services.google_service import GoogleServiceFactory, get_google_services_factory
from services.image_service import OpenRouterImageClient, get_image_client

logging.basicConfig(level=logging.INFO, format="%(levelname)s:     %(name)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Visionary API")

app.add_middleware(
    CORSMiddleware, allow_origins=[get_client_url()], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

# --- Pydantic Models ---
class GenerateRequest(BaseModel): prompt: str; aspectRatio: AspectRatio = "1:1"
class SaveToGoogleRequest(BaseModel): imageData: str; prompt: str; aspectRatio: str


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {exc.errors()}"})


# --- Google OAuth ---
@app.get("/api/auth/google/url")
async def google_auth_url(flow: AuthorizationFlow = Depends(get_auth_flow)):
    return {"url": flow.get_authorization_url()}

@app.get("/api/auth/google/callback", name="auth_callback")
async def auth_callback(code: Optional[str] = None, flow: AuthorizationFlow = Depends(get_auth_flow)):
    response = HTMLResponse(AUTH_SUCCESS_HTML)
    try:
        await flow.exchange_code(code, response)
    except AuthExchangeError as e:
        logger.error("ERROR exchanging code: %s", e)
        return PlainTextResponse("Authentication failed", status_code=500)
    return response

@app.get("/api/auth/google/status")
async def google_auth_status(tokens: Optional[OAuthTokenSet] = Depends(read_session)):
    # Presence only; an expired access token still counts.
    return {"isAuthenticated": tokens is not None}


# --- Export ---
@app.post("/api/save-to-google")
async def save_to_google(
    request: Request,
    tokens: Optional[OAuthTokenSet] = Depends(read_session),
    build_services: GoogleServiceFactory = Depends(get_google_services_factory),
):
    # Session first: a missing cookie is a 401 whatever the body holds.
    try:
        if tokens is None:
            raise NotAuthenticatedError()
        body = SaveToGoogleRequest.model_validate(await request.json())
        file_link = await export_to_google(tokens, build_services, body.imageData, body.prompt, body.aspectRatio)
    except NotAuthenticatedError as e:
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
    except Exception as e:
        logger.exception("Error saving to Google: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to save to Google"})
    return {"success": True, "fileLink": file_link}


# --- Generation ---
@app.post("/api/openrouter-generate")
async def openrouter_generate(request: GenerateRequest, image_client: OpenRouterImageClient = Depends(get_image_client)):
    if not request.prompt.strip():
        return JSONResponse(status_code=400, content={"error": "Prompt is required"})
    try:
        return await image_client.generate(request.prompt, request.aspectRatio)
    except UpstreamError as e:
        logger.error("ERROR generating image: %s", e)
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})


@app.get("/")
async def read_root():
    return {"message": "Visionary backend is running!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

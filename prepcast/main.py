from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prepcast.config import settings
from prepcast.routes.analysis import router as analysis_router
from prepcast.routes.cleaning import router as cleaning_router
from prepcast.routes.sessions import router as sessions_router

app = FastAPI(title="PrepCast API", version="1.0.0", debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "PrepCast API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(sessions_router)
app.include_router(cleaning_router)
app.include_router(analysis_router)

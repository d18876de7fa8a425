"""
viewdeb: FastAPI Server
Upload a package, get its report back.
"""
from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import os
import shutil
import logging
import tempfile
import uvicorn
from datetime import datetime, timezone
from typing import Optional

from viewdeb_core.config import settings, ViewdebConfig
from viewdeb_core.errors import (
    InvalidInput, ReadError, SizeLimitExceeded, ViewdebError,
)
from viewdeb_core.pipeline import PackageInspector

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
COPY_CHUNK = 1024 * 1024

STATUS_CODES = {
    InvalidInput: 400,
    SizeLimitExceeded: 413,
    ReadError: 404,
}


# ─── Lifespan ───────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app):
    limits = settings.limits
    logger.info(
        f"viewdeb server starting on http://{settings.server.host}:{settings.server.port} "
        f"(max package {limits.max_package_size // (1024 * 1024)}MB, "
        f"{limits.max_elf_analysis} ELF analyses per package)"
    )
    yield
    logger.info("viewdeb server shutting down...")


# ─── App ────────────────────────────────────────────────────────────────
app = FastAPI(
    title="viewdeb",
    description="Debian package inspection service",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ViewdebError)
async def viewdeb_error_handler(request, exc: ViewdebError):
    status = next((code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 500)
    if status == 500:
        logger.error(f"Parse error: {exc}")
    return JSONResponse(status_code=status, content=exc.to_dict())


# ─── Helpers ────────────────────────────────────────────────────────────
def get_inspector() -> PackageInspector:
    return PackageInspector(config=settings)


def make_upload_dir(config: ViewdebConfig) -> str:
    analysis = config.analysis
    if analysis.scratch_root:
        os.makedirs(analysis.scratch_root, exist_ok=True)
    return tempfile.mkdtemp(prefix=f"{analysis.scratch_prefix}upload_", dir=analysis.scratch_root)


def store_upload(upload: Optional[UploadFile], directory: str, inspector: PackageInspector) -> str:
    """Copies the upload into ``directory``, enforcing the size limit while copying."""
    if upload is None or not upload.filename:
        raise InvalidInput("No file provided", code="NO_FILE")

    filename = os.path.basename(upload.filename)
    limits = inspector.config.limits
    if not inspector.extractor.supports(filename):
        raise InvalidInput(
            f"Invalid file type. Only {', '.join(limits.allowed_extensions)} files are supported",
            details={"filename": filename, "extension": os.path.splitext(filename)[1]},
        )

    target = os.path.join(directory, filename)
    written = 0
    with open(target, "wb") as out:
        while True:
            chunk = upload.file.read(COPY_CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > limits.max_package_size:
                raise SizeLimitExceeded(
                    f"File size exceeds {limits.max_package_size // (1024 * 1024)}MB limit",
                    details={"limit": limits.max_package_size},
                )
            out.write(chunk)
    return target


# ─── Health ─────────────────────────────────────────────────────────────
@app.get("/api/health")
def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
    }


# ─── Package Inspection ─────────────────────────────────────────────────
# Plain ``def`` endpoints: FastAPI runs them in its threadpool, so the
# blocking extraction never stalls the event loop.
@app.post("/api/parse")
def parse_package(file: Optional[UploadFile] = File(None)):
    """Analyze an uploaded .deb / .udeb and return the full report"""
    inspector = get_inspector()
    upload_dir = make_upload_dir(inspector.config)
    try:
        package_path = store_upload(file, upload_dir, inspector)
        report = inspector.inspect(package_path)
        return report.to_dict()
    finally:
        shutil.rmtree(upload_dir, ignore_errors=True)


@app.post("/api/file")
def read_package_file(
    file: Optional[UploadFile] = File(None),
    path: str = Form(...),
    max_lines: Optional[int] = Form(None, ge=1),
):
    """Preview one file from inside an uploaded package"""
    inspector = get_inspector()
    upload_dir = make_upload_dir(inspector.config)
    try:
        package_path = store_upload(file, upload_dir, inspector)
        content = inspector.read_file(package_path, path, max_lines)
        return content.to_dict()
    finally:
        shutil.rmtree(upload_dir, ignore_errors=True)


# ─── Entry Point ────────────────────────────────────────────────────────
def start():
    uvicorn.run(
        "viewdeb_server.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level="info",
    )

if __name__ == "__main__":
    start()

"""Minimal FastAPI shim over the svnauth tool implementations.

Same behaviour as the MCP tools, exposed as plain JSON endpoints for clients
that do not speak MCP.
"""
import os, time
from typing import List, Optional, Dict

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .ingestion.auth_ingest import DEFAULT_MAX_FILES
from . import mcp_app

app = FastAPI(title="svnauth-mcp-shim")

# ----------------- API Models -----------------

class CredentialOut(BaseModel):
    file: str
    path: str
    status: str
    repository: Optional[str] = None
    username: Optional[str] = None
    encrypted_password: Optional[str] = None
    password: Optional[str] = None
    passtype: Optional[str] = None
    error: Optional[str] = None
    line_num: Optional[int] = None

class ScanRequest(BaseModel):
    path: Optional[str] = None
    max_files: int = DEFAULT_MAX_FILES
    decrypt: bool = True
    reveal_passwords: bool = False

class ScanResponse(BaseModel):
    auth_dir: str
    files_found: int
    records: List[CredentialOut]
    stats: Dict[str, int]
    warnings: List[str] = []

class ParseRequest(BaseModel):
    path: str
    reveal: bool = False

class ParseResponse(BaseModel):
    path: str
    keys: List[str]
    values: Dict[str, str]


@app.get("/")
def root():
    return {"status": "ok", "service": "svnauth-mcp-shim"}

@app.get("/healthz")
def healthz():
    return {"status": "ok", "time": int(time.time()*1000)}

@app.post("/credentials/scan", response_model=ScanResponse)
def scan(body: ScanRequest):
    return mcp_app._scan_credentials_impl(
        path=body.path, max_files=body.max_files, decrypt=body.decrypt, reveal_passwords=body.reveal_passwords
    )

@app.post("/credentials/parse", response_model=ParseResponse)
def parse(body: ParseRequest):
    out = mcp_app._parse_auth_file_impl(body.path, reveal=body.reveal)
    err = out.get('error')
    if err == 'not_found':
        raise HTTPException(status_code=404, detail=f"file not found: {body.path}")
    if err == 'parse_error':
        raise HTTPException(status_code=422, detail=out['detail'])
    if err:
        raise HTTPException(status_code=400, detail=f"{err}:{out.get('detail')}")
    return out


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host=os.environ.get('HOST', '127.0.0.1'), port=int(os.environ.get('PORT', '8000')))

import uvicorn

from .config import PORT

if __name__ == "__main__":
    uvicorn.run("credify.main:app", host="0.0.0.0", port=PORT, proxy_headers=True)

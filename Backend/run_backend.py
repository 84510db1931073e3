import os
import uvicorn

if __name__ == "__main__":
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    print(f"🚀 Starting Royal Drive back-office API on {host}:{port}")
    uvicorn.run("royaldrive.main:app", host=host, port=port, reload=False)

# promptbench/__main__.py
"""
Run the API with uvicorn:

    python -m promptbench

or directly: uvicorn promptbench.app:create_app --factory
"""

import os

import uvicorn


def main():
    port = int(os.getenv("PORT", "3001"))
    host = os.getenv("HOST", "0.0.0.0")
    uvicorn.run("promptbench.app:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    main()

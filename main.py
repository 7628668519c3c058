import argparse

import uvicorn

from quiz_session.app import create_app
from quiz_session.config import HOST, PORT


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the quiz session API")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    uvicorn.run(create_app(), host=args.host, port=args.port)

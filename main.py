"""Mission Desk dev launcher. Starts the backend in watch mode."""

import argparse
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Mission Desk dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clean and create demo records")
    args = parser.parse_args()

    # Handle --demo: init services and populate, then continue to dev server
    if args.demo or args.data_dir:
        from backend import services
        data_dir = args.data_dir or Path("data")
        services.init_services(data_dir)
        if args.demo:
            from backend.demo import create_demo_data
            create_demo_data()

    # The reloader imports backend.app in a fresh process; pass the data dir along
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    uvicorn.run("backend.app:app", host=HOST, port=int(BACKEND_PORT), reload=True)


if __name__ == "__main__":
    main()

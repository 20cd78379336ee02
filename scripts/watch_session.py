"""Follow an upload session's progress from the command line."""
import sys

from xlsmart.services.progress_poller import ProgressPoller


def print_snapshot(snapshot: dict) -> None:
    """Print one progress line for a session snapshot."""
    progress = snapshot.get("progress") or {}
    done = progress.get("assigned", progress.get("completed", 0))
    print(
        f"[{snapshot.get('status')}] "
        f"{progress.get('processed', 0)}/{progress.get('total', 0)} processed, "
        f"{done} done, {progress.get('errors', 0)} errors"
    )


def main():
    """Main function to parse arguments and follow the session."""
    if len(sys.argv) < 2:
        print("Usage: python watch_session.py <session_id> [base_url] [max_wait_seconds]")
        print("Example: python watch_session.py 3f0c... http://localhost:8000 600")
        sys.exit(1)

    session_id = sys.argv[1]
    base_url = sys.argv[2] if len(sys.argv) > 2 else "http://localhost:8000"
    max_wait = float(sys.argv[3]) if len(sys.argv) > 3 else None

    poller = ProgressPoller(base_url, max_wait_seconds=max_wait)
    try:
        final = poller.poll(session_id, on_update=print_snapshot)
    except TimeoutError as e:
        print(f"⏱️ {e}")
        sys.exit(2)

    if final.get("status") == "completed":
        print(f"✅ Session {session_id} completed")
    else:
        print(f"❌ Session {session_id} ended '{final.get('status')}': {final.get('error_message')}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Post-install script for setting up browser dependencies.

Downloads the Chromium build Playwright drives. Run it once after
installing the package: `pagecrawl-postinstall`.
"""
import subprocess
import sys


def postinstall():
    """
    Run playwright install to download the Chromium binary.

    Exits with status 1 when the download fails so that provisioning
    scripts notice.
    """
    print("Running 'playwright install chromium'...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", "chromium"],
            check=True,
            capture_output=True,
            text=True
        )
        if result.stdout:
            print(result.stdout)
        print("Chromium browser installed successfully.")
    except subprocess.CalledProcessError as e:
        print(f"Error installing Chromium browser for Playwright: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        print(
            "Please run the following command manually:\n"
            "  python -m playwright install chromium",
            file=sys.stderr
        )
        sys.exit(1)


if __name__ == "__main__":
    postinstall()

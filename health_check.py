"""Probe a running portal: exits 0 when /api/health reports ok, 1 otherwise"""
import os
import sys
import requests

DEFAULT_URL = f"http://localhost:{os.environ.get('PORT', 3000)}/api/health"

def check_health(url=DEFAULT_URL, timeout=5):
    print(f"Checking health at {url}...")

    try:
        response = requests.get(url, timeout=timeout)
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        print("\nHealth check FAILED")
        print(f"  Error: {e}")
        return False

    if response.ok and data.get('status') == 'ok':
        print("\nHealth check PASSED")
        print(f"  Status: {data['status']}")
        print(f"  Timestamp: {data.get('timestamp')}")
        return True

    print("\nHealth check FAILED")
    print(f"  Response: {data}")
    return False

if __name__ == '__main__':
    url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL
    sys.exit(0 if check_health(url) else 1)

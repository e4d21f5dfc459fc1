import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"

# Created by parceltrack/seed_users.py
ADMIN_CREDENTIALS = {"email": "admin@parcels.local", "password": "admin1234"}


def start_server(echo=False):
    env = {**os.environ, "DB_ECHO": "True"} if echo else None
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "parceltrack.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def login():
    resp = httpx.post(f"{BASE_URL}{API_PREFIX}/auth/login", json=ADMIN_CREDENTIALS)
    if resp.status_code != 200:
        raise Exception(f"Login failed: {resp.status_code} {resp.text}")
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def run_verification():
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server(echo=True)
    
    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Create a parcel and move it along
        print("\n--- [Step 2] Creating Parcel (Persistence Test) ---")
        headers = login()
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/parcels", headers=headers, json={
            "sender_name": "Persistence Check",
            "sender_address": "1 Depot Way",
            "recipient_name": "Restart Tester",
            "recipient_address": "2 Reboot Lane",
            "weight": "1.25",
        })
        if resp.status_code != 201:
            raise Exception(f"Parcel creation failed: {resp.status_code} {resp.text}")
        parcel = resp.json()
        tracking_number = parcel["tracking_number"]
        print(f"✅ Parcel created: {tracking_number}")
        
        resp = httpx.put(
            f"{BASE_URL}{API_PREFIX}/parcels/{parcel['id']}/status",
            headers=headers,
            json={"status": "in_transit", "history_note": "Persistence check"}
        )
        if resp.status_code != 200 or not resp.json()["changed"]:
            raise Exception(f"Status update failed: {resp.status_code} {resp.text}")
        print("✅ Status moved to in_transit")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)
    
    time.sleep(2) # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. Public lookup needs no token
        print("\n--- [Step 5] Public Tracking (Post-Restart) ---")
        resp = httpx.get(f"{BASE_URL}/track-parcel/{tracking_number}")
        if resp.status_code == 200 and resp.json()["status"] == "in_transit":
            print("✅ Parcel and status persisted")
            print(resp.json())
        else:
            raise Exception(f"Tracking lookup failed after restart: {resp.status_code} {resp.text}")

        # 5. History survived too
        print("\n--- [Step 6] Verifying History ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/parcels/{parcel['id']}", headers=login())
        history = resp.json().get("history", [])
        if history and history[0]["new_status"] == "in_transit":
            print("✅ History persisted")
        else:
            print(f"❌ History missing: {resp.status_code} {resp.text}")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        stop_server(proc2)

if __name__ == "__main__":
    run_verification()

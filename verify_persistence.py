import time
import subprocess
import httpx
import sys
import os
import signal
import uuid

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "rental_backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"]


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


def api(path):
    return f"{BASE_URL}{API_PREFIX}{path}"


def run_verification():
    plate = f"PT-{uuid.uuid4().hex[:6].upper()}"
    booking = {"start_at": "2031-03-10T10:00", "end_at": "2031-03-12T10:00"}

    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"}  # Enable echo to see SQL
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Create car, customer and a reservation
        print("\n--- [Step 2] Booking a Car (Persistence Test) ---")
        car = httpx.post(api("/cars"), json={"brand": "Persist", "plate": plate, "base_price_per_day": 50}).json()
        customer = httpx.post(api("/customers"), json={"first_name": "Persist", "last_name": "Check"}).json()
        resp = httpx.post(api("/reservations"), json={"car_id": car["id"], "customer_id": customer["id"], **booking})

        if resp.status_code == 201:
            reservation = resp.json()
            print("✅ Reservation Created")
            print(reservation)
        else:
            print(f"❌ Booking Failed: {resp.status_code} {resp.text}")
            raise Exception("Booking failed")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(SERVER_CMD, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. Reservation survived
        print("\n--- [Step 5] Reading Reservation (Post-Restart) ---")
        resp = httpx.get(api(f"/reservations/{reservation['id']}"))
        if resp.status_code == 200:
            print("✅ Reservation Persisted")
        else:
            print(f"❌ Reservation Missing: {resp.status_code} {resp.text}")
            raise Exception("Reservation lost after restart")

        # 5. Overlap is still enforced against persisted data
        print("\n--- [Step 6] Verifying Overlap Guard ---")
        resp = httpx.post(api("/reservations"), json={"car_id": car["id"], "customer_id": customer["id"], **booking})
        if resp.status_code == 409:
            print("✅ Duplicate booking rejected")
        else:
            print(f"❌ Expected 409, got {resp.status_code}")

        # 6. Clean up
        httpx.delete(api(f"/reservations/{reservation['id']}"))
        httpx.delete(api(f"/cars/{car['id']}"))
        httpx.delete(api(f"/customers/{customer['id']}"))

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()


if __name__ == "__main__":
    run_verification()

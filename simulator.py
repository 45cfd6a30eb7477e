# simulator.py
import random
import time

import requests

SERVER = "http://127.0.0.1:8000"

# buses with starting coords (Pune)
buses = [
    {'name': 'Bus 12', 'lat': 18.5204, 'lng': 73.8567},
    {'name': 'Bus 21', 'lat': 18.5310, 'lng': 73.8446},
    {'name': 'Bus 34', 'lat': 18.5089, 'lng': 73.8725},
]


def register(b, server=SERVER):
    resp = requests.post(f"{server}/api/track/generate", timeout=5)
    resp.raise_for_status()
    b['trackId'] = resp.json()['trackId']
    print("TRACK", b['name'], b['trackId'])
    return b['trackId']


def step(b, server=SERVER):
    # small random step in lat/lng (not accurate, good enough for sim)
    b['lat'] += (random.random() - 0.5) / 5000.0
    b['lng'] += (random.random() - 0.5) / 5000.0
    payload = {
        'trackId': b['trackId'],
        'lat': b['lat'],
        'lng': b['lng'],
        'speed': round(random.uniform(0, 12), 1),
        'accuracy': 5,
        'isActive': True,
    }
    try:
        resp = requests.post(f"{server}/api/location/update", json=payload, timeout=5)
        print("POST", payload, resp.status_code, resp.text)
    except requests.RequestException as e:
        print("ERR", e)
    return payload


if __name__ == "__main__":
    for bb in buses:
        register(bb)
    try:
        while True:
            for bb in buses:
                step(bb)
            time.sleep(2)
    except KeyboardInterrupt:
        for bb in buses:
            requests.post(f"{SERVER}/api/location/deactivate/{bb['trackId']}", timeout=5)

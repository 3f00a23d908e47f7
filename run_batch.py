#!/usr/bin/env python3
"""
Runbook: Batch Acquisition Test
Expected: one batch of 10 readings in passive mode, then one in active mode
"""

import time

from acuity_lib import ReadMode, TimeoutPolicy, controller

# ============================================================================
# CONFIGURATION - EDIT THIS
# ============================================================================
SERIAL_PORT = "/dev/ttyUSB0"  # Change to your port
BAUD_RATE = 9600
TIMEOUT_POLICY = TimeoutPolicy.SKIP  # FAIL aborts on the first 1.5s active timeout

# ============================================================================
# TEST SCRIPT - DO NOT EDIT BELOW
# ============================================================================

print("=" * 70)
print("Runbook: Acuity Batch Acquisition")
print("=" * 70)
print(f"Port: {SERIAL_PORT}")
print(f"Baud: {BAUD_RATE}")
print(f"Active timeout policy: {TIMEOUT_POLICY.value}")
print()

handle = None

try:
    # Step 1: Connect
    print("[1/3] Connecting to gauge...")
    handle = controller.connect(SERIAL_PORT, mode=ReadMode.PASSIVE, baud=BAUD_RATE)
    name, settings = controller.get_config(handle)
    print(f"      Connected to {name}: {settings}")
    print()

    # Step 2 and 3: One batch per mode
    for step, mode in ((2, ReadMode.PASSIVE), (3, ReadMode.ACTIVE)):
        print(f"[{step}/3] Acquiring batch in {mode.value} mode...")
        controller.set_read_mode(handle, mode)

        start_time = time.time()
        batch = controller.acquire_batch(handle, timeout_policy=TIMEOUT_POLICY)
        elapsed = time.time() - start_time

        for i, record in enumerate(batch, 1):
            print(f"      #{i:2d} west={record.west:.3f} "
                  f"center={record.center:.3f} east={record.east:.3f}")
        print(f"      {len(batch)} records in {elapsed:.2f}s")

        if batch.complete and len(batch) == 10:
            print("✓ PASS: Complete batch of 10")
        else:
            print(f"✗ FAIL: Expected complete batch of 10, got {len(batch)}")
        print()

finally:
    if handle is not None and controller.is_alive(handle):
        controller.disconnect(handle)
    print()
    print("Disconnected.")
    print("=" * 70)

from __future__ import annotations

# Single-command runner.
#
# Starts a full local system by spawning child processes:
# - the queue engine service
# - one auto attendant per configured counter (or the first N)
# - the kiosk traffic generator (Poisson arrivals)
#
# With `--panel` the console call panel runs in the parent process.

import argparse
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass

from .config import load_config


@dataclass
class Child:
    name: str
    proc: subprocess.Popen


def run_all(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    config_path: str | None,
    num_attendants: int | None,
    arrival_rate: float,
    priority_share: float,
    service_seconds: float,
    seed: int | None,
    show_panel: bool,
) -> None:
    if arrival_rate <= 0:
        raise ValueError("arrival_rate must be > 0")
    config = load_config(config_path)
    counters = config.counters if num_attendants is None else config.counters[:num_attendants]
    if not counters:
        raise ValueError("num_attendants must be > 0")

    python = sys.executable
    mqtt_args = ["--mqtt-host", mqtt_host, "--mqtt-port", str(mqtt_port), "--namespace", namespace]

    # Same process group per child so Ctrl+C can stop everything.
    def popen(name: str, args: list[str]) -> Child:
        proc = subprocess.Popen(args, preexec_fn=os.setsid)
        return Child(name=name, proc=proc)

    children: list[Child] = []

    engine_args = [python, "-m", "service_queue.service", *mqtt_args]
    if config_path is not None:
        engine_args += ["--config", config_path]
    children.append(popen("engine", engine_args))

    # Let the engine subscribe before clients start sending requests.
    time.sleep(0.5)

    for counter in counters:
        att_args = [
            python,
            "-m",
            "service_queue.attendant",
            "auto",
            "--counter-id",
            counter.id,
            "--service-seconds",
            str(service_seconds),
            *mqtt_args,
        ]
        children.append(popen(f"attendant-{counter.id}", att_args))

    gen_args = [
        python,
        "-m",
        "service_queue.generator",
        "--rate",
        str(arrival_rate),
        "--priority-share",
        str(priority_share),
        *mqtt_args,
    ]
    if seed is not None:
        gen_args += ["--seed", str(seed)]
    children.append(popen("generator", gen_args))

    print(
        "[run] started: "
        + ", ".join(f"{c.name}(pid={c.proc.pid})" for c in children)
        + "\nPress Ctrl+C to stop all."
    )

    if show_panel:
        from .panel import main as panel_main

        old_argv = sys.argv[:]
        try:
            sys.argv = [old_argv[0], *mqtt_args, "--poll-interval", str(config.poll_interval)]
            panel_main()
        finally:
            sys.argv = old_argv
            _terminate_children(children)
        return

    try:
        # Wait until any child exits unexpectedly.
        while True:
            for c in children:
                rc = c.proc.poll()
                if rc is not None:
                    raise RuntimeError(f"Child {c.name} exited with code {rc}")
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        _terminate_children(children)


def _terminate_children(children: list[Child]) -> None:
    for c in children:
        if c.proc.poll() is None:
            try:
                os.killpg(os.getpgid(c.proc.pid), signal.SIGTERM)
            except ProcessLookupError:
                pass

    deadline = time.time() + 2.0
    while time.time() < deadline:
        if all(c.proc.poll() is not None for c in children):
            return
        time.sleep(0.1)

    for c in children:
        if c.proc.poll() is None:
            try:
                os.killpg(os.getpgid(c.proc.pid), signal.SIGKILL)
            except ProcessLookupError:
                pass


def main() -> None:
    parser = argparse.ArgumentParser(description="Run engine + attendants + kiosk generator")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=f"servicequeue/run/{int(time.time())}")
    parser.add_argument("--config", default=None, help="JSON file with categories and counters")
    parser.add_argument("--num-attendants", type=int, default=None, help="default: one per counter")
    parser.add_argument("--arrival-rate", type=float, required=True, help="λ customers/second")
    parser.add_argument("--priority-share", type=float, default=0.2)
    parser.add_argument("--service-seconds", type=float, default=3.0)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--panel", action="store_true", help="show the console call panel")
    args = parser.parse_args()

    run_all(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        config_path=args.config,
        num_attendants=args.num_attendants,
        arrival_rate=args.arrival_rate,
        priority_share=args.priority_share,
        service_seconds=args.service_seconds,
        seed=args.seed,
        show_panel=args.panel,
    )


if __name__ == "__main__":
    main()

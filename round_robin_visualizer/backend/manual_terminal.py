from __future__ import annotations

import shlex
from typing import List, Optional
from colorama import Fore, Style, init as colorama_init

from .core import build_batch, SimulationSnapshot, InvalidQuantumError, EngineState
from .catalog import CatalogDatabase, CatalogError, CatalogEntry, KINDS
from .engine import RoundRobinEngine, EngineConfig
from .utils import summarize, average_finish_time
from .visualizer import plot_service_counts


class ManualTerminal:
    def __init__(self, config: EngineConfig | None = None, verbose: bool = True) -> None:
        colorama_init(autoreset=True)
        self.engine = RoundRobinEngine(config or EngineConfig(time_scale=0.0))
        self.db: Optional[CatalogDatabase] = None
        self.kind = "cpu"
        self.catalogs: List[CatalogEntry] = []
        self.verbose = verbose
        self.engine.subscribe(self._on_snapshot)

    def prompt(self) -> None:
        print(Fore.CYAN + "Round Robin terminal. Type 'help' for commands.")
        while True:
            try:
                raw = input(Fore.GREEN + "> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if not raw.strip():
                continue
            self.handle_command(raw)

    def handle_command(self, raw: str) -> None:
        try:
            parts = shlex.split(raw)
        except ValueError as e:
            print(Fore.RED + f"Parse error: {e}")
            return
        if not parts:
            return
        cmd, *args = parts
        cmd = cmd.lower()
        handlers = {
            "help": self._help,
            "open": self._open,
            "kind": self._kind,
            "quantum": self._quantum,
            "catalogs": self._catalogs,
            "load": self._load,
            "list": self._list,
            "run": self._run,
            "step": self._step,
            "stats": self._stats,
            "chart": self._chart,
            "export": self._export,
        }
        if cmd in ("exit", "quit"):
            raise SystemExit(0)
        handler = handlers.get(cmd)
        if handler is None:
            print(Fore.YELLOW + "Unknown command. Type 'help'.")
            return
        try:
            handler(args)
        except CatalogError as e:
            print(Fore.RED + f"Catalog error: {e}")

    def _help(self, args: List[str]) -> None:
        print("Commands:")
        print("  open <file.db>")
        print(f"  kind <{'|'.join(KINDS)}>")
        print("  quantum <n>")
        print("  catalogs")
        print("  load <catalog_id>")
        print("  list")
        print("  run [--speed S]     (S = seconds per time unit, 0 = instant)")
        print("  step                (run one quantum slice)")
        print("  stats")
        print("  chart [path.png]")
        print("  export <base_path>")
        print("  exit")

    def _open(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: open <file.db>")
            return
        self.db = CatalogDatabase(args[0])
        self.engine.load_batch([])
        self._catalogs([])

    def _kind(self, args: List[str]) -> None:
        if not args or args[0].lower() not in KINDS:
            print(Fore.RED + f"Usage: kind <{'|'.join(KINDS)}>")
            return
        self.kind = args[0].lower()
        self.engine.load_batch([])
        if self.db is not None:
            self._catalogs([])

    def _quantum(self, args: List[str]) -> None:
        if not args:
            print(f"Quantum: {self.engine.quantum}")
            return
        try:
            self.engine.set_quantum(int(args[0]))
        except (ValueError, InvalidQuantumError) as e:
            print(Fore.RED + f"Invalid quantum: {e}")
            return
        print(Fore.CYAN + f"Quantum set to {self.engine.quantum} (applies to the next slices and loads)")

    def _catalogs(self, args: List[str]) -> None:
        if self.db is None:
            print("No database open")
            return
        self.catalogs = self.db.list_catalogs(self.kind)
        if not self.catalogs:
            print(f"No catalogs in table '{self.kind}'")
            return
        for c in self.catalogs:
            print(f"  {c.catalog_id}: {c.name}")

    def _load(self, args: List[str]) -> None:
        if self.db is None:
            print("No database open")
            return
        if not args:
            print(Fore.RED + "Usage: load <catalog_id>")
            return
        raw_id = args[0]
        catalog_id = int(raw_id) if raw_id.lstrip("-").isdigit() else raw_id
        rows = self.db.load_rows(catalog_id, self.kind)
        self.engine.load_batch(build_batch(rows, self.engine.quantum))
        print(Fore.CYAN + f"Loaded {len(rows)} processes from catalog {catalog_id}")

    def _list(self, args: List[str]) -> None:
        snap = self.engine.snapshot()
        if not snap.all_records():
            print("No processes loaded")
            return
        print(summarize(snap.all_records()).to_string(index=False))

    def _run(self, args: List[str]) -> None:
        if args:
            try:
                if args[0] != "--speed" or len(args) != 2:
                    raise ValueError(args)
                speed = float(args[1])
                if speed < 0:
                    raise ValueError(speed)
            except ValueError:
                print(Fore.RED + "Usage: run [--speed S]")
                return
            self.engine.config.time_scale = speed
        if not self.engine.is_simulating and not self.engine.start():
            print(Fore.YELLOW + "Nothing to run. Load a catalog first.")
            return
        try:
            snap = self.engine.run()
        except KeyboardInterrupt:
            print(Fore.YELLOW + "Interrupted; 'run' or 'step' continues the simulation.")
            return
        print(Style.BRIGHT + f"Simulation finished at t={snap.clock}. Avg finish: {average_finish_time(snap.done):.2f}")

    def _step(self, args: List[str]) -> None:
        if not self.engine.is_simulating and not self.engine.start():
            print(Fore.YELLOW + "Nothing to run. Load a catalog first.")
            return
        record = self.engine.step_slice()
        if record is None:
            return
        print(Fore.CYAN + f"Slice of pid {record.pid} ({record.name}) ended at t={self.engine.clock}, "
                          f"remaining {record.remaining_service}")
        if not self.engine.is_simulating:
            print(Style.BRIGHT + f"Simulation finished at t={self.engine.clock}. "
                                 f"Avg finish: {average_finish_time(self.engine.done):.2f}")

    def _stats(self, args: List[str]) -> None:
        snap = self.engine.snapshot()
        if snap.state != EngineState.FINISHED:
            print("No simulation yet")
            return
        print(summarize(snap.done).to_string(index=False))
        print(f"Total time: {snap.clock}")
        print(f"Avg finish time: {average_finish_time(snap.done):.3f}")

    def _chart(self, args: List[str]) -> None:
        snap = self.engine.snapshot()
        if not snap.done:
            print("No finished processes to chart")
            return
        out_path = args[0] if args else None
        plot_service_counts(snap.done, out_path)
        if out_path:
            print(Fore.CYAN + f"Saved chart to {out_path}")

    def _export(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: export <base_path>")
            return
        self.engine.logger.export_json(f"{args[0]}.json")
        self.engine.logger.export_csv(args[0])
        print(Fore.CYAN + f"Saved event log to {args[0]}.json and {args[0]}_*.csv")

    def _on_snapshot(self, snap: SimulationSnapshot) -> None:
        if not self.verbose or not snap.is_simulating:
            return
        ready = " ".join(str(r.pid) for r in snap.ready) or "-"
        running = f"{snap.running.pid} ({snap.running.name})" if snap.running else "-"
        done = " ".join(str(r.pid) for r in snap.done) or "-"
        print(f"{Fore.WHITE}[t={snap.clock:>5}] "
              f"{Fore.YELLOW}Listos: {ready}  "
              f"{Fore.GREEN}Ejecución: {running}  "
              f"{Fore.BLUE}Terminados: {done}")


def main() -> None:
    ManualTerminal().prompt()


if __name__ == "__main__":
    main()

from __future__ import annotations
import typer, asyncio, logging, sys
from rich import print
from rich.logging import RichHandler
from contextlib import nullcontext
from pathlib import Path
from typing import Optional
from .config import load_config, dump_config, TrackingConfig
from .eye.tracker import GlintTracker, FrameError
from .io.camera import frames
from .io.display import CvDisplay, NullDisplay, DirectoryDisplay
from .kernels.handle import open_kernels, KernelError
from .runtime.events import GlintEvent, ws_broadcast

app = typer.Typer(add_completion=False, help="glinttrack: corneal glint tracking for near-eye cameras")

def _setup_logging(verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s",
                        datefmt="[%X]", handlers=[RichHandler(rich_tracebacks=True)])

def _load(config: Optional[str]) -> TrackingConfig:
    try:
        return load_config(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"[red]Bad config[/red] {config}: {e}")
        raise typer.Exit(2)

def _sessions(cfg: TrackingConfig):
    # no kernel set configured: comparison view stays blank
    return open_kernels(cfg.kernels) if cfg.kernels else nullcontext(None)

@app.command()
def run(source: str = typer.Argument("0", help="camera index, video file, image or image folder"),
        config: Optional[str] = typer.Option(None, help="YAML tracking config"),
        ws: bool = typer.Option(False, help="broadcast glint events over WebSocket"),
        port: int = 8765,
        headless: bool = typer.Option(False, help="no windows, just JSONL events"),
        max_frames: int = typer.Option(0, help="stop after N frames (0 = no limit)"),
        raw: bool = typer.Option(False, help="request unconverted (e.g. Y16) frames from the camera"),
        verbose: bool = False):
    """
    Track glints on a live source, show debug windows and print JSONL events.
    """
    _setup_logging(verbose)
    cfg = _load(config)
    queue: "asyncio.Queue[str]" = asyncio.Queue()

    async def producer():
        try:
            sess = _sessions(cfg)
            with sess as gens:
                display = NullDisplay() if headless else CvDisplay(cfg)
                tracker = GlintTracker(cfg, kernels=gens, display=display)
                try:
                    n = 0
                    for f in frames(int(source) if source.isdigit() else source, raw=raw):
                        n += 1
                        try:
                            res = tracker(f["image"])
                        except FrameError:
                            # already logged; keep the windows and the frame budget going
                            res = None
                        if res is not None:
                            line = GlintEvent.from_result(res, frame=f["meta"]["index"]).model_dump_json()
                            typer.echo(line)
                            if ws: await queue.put(line)
                        await asyncio.sleep(0)
                        if max_frames and n >= max_frames: break
                        # press q to quit
                        if display.poll(1) == ord('q'):
                            break
                finally:
                    display.close()
        except KernelError as e:
            print(f"[red]Tracking session failed:[/red] {e}")
            raise typer.Exit(1)

    async def main():
        if not ws:
            await producer(); return
        started = asyncio.Event()
        bcast = asyncio.create_task(ws_broadcast(queue, "0.0.0.0", port, started))
        ready = asyncio.create_task(started.wait())
        await asyncio.wait({bcast, ready}, return_when=asyncio.FIRST_COMPLETED)
        prod = None
        try:
            if not bcast.done():
                prod = asyncio.create_task(producer())
                await asyncio.wait({bcast, prod}, return_when=asyncio.FIRST_COMPLETED)
            if bcast.done():
                # broadcaster only ever ends by failing
                try:
                    bcast.result()
                except Exception as e:
                    print(f"[red]WebSocket broadcast failed:[/red] {e}")
                    raise typer.Exit(1)
            if prod is not None: await prod
        finally:
            for t in (ready, bcast, prod):
                if t is not None and not t.done(): t.cancel()

    asyncio.run(main())

@app.command()
def still(image: Path = typer.Argument(..., exists=True, help="16-bit image (or folder of them)"),
          out: Path = typer.Option(Path("glint_debug"), help="output folder for debug PNGs"),
          config: Optional[str] = typer.Option(None, help="YAML tracking config"),
          verbose: bool = False):
    """
    Run the pipeline over still images and write the debug views as PNGs.
    """
    _setup_logging(verbose)
    cfg = _load(config)
    try:
        with _sessions(cfg) as gens:
            n = 0
            for f in frames(str(image)):
                stem = Path(f["meta"].get("path", f"frame{n}")).stem
                tracker = GlintTracker(cfg, kernels=gens, display=DirectoryDisplay(out, prefix=f"{stem}_"))
                try:
                    res = tracker(f["image"])
                except FrameError as e:
                    print(f"[yellow]skipped[/yellow] {stem}: {e}")
                    continue
                print(f"[green]{stem}[/green]", GlintEvent.from_result(res, frame=n).model_dump_json())
                n += 1
    except KernelError as e:
        print(f"[red]Cannot start tracking session:[/red] {e}")
        raise typer.Exit(1)
    print("[green]Wrote debug images to[/green]", out)

@app.command("config")
def show_config(config: Optional[str] = typer.Argument(None, help="YAML tracking config to validate")):
    """
    Print the effective tracking config as YAML.
    """
    sys.stdout.write(dump_config(_load(config)))

if __name__ == "__main__":
    app()

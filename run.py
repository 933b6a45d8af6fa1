import asyncio
import aiohttp
from rich import print

from svpano.core import FetchConfig, fetch_panos
from svpano.errors import SVPanoError
from svpano.views import ViewConfig
from svpano.my_utils import (
    open_dataset,
    parse_args,
    save_options_from_args,
    timer
)

async def main(args) -> tuple[int, int, str]:
    dataset = open_dataset(args.dataset)

    if limit:= args.limit:
        dataset = dataset[:limit]

    view_configs = None
    if args.views:
        size = tuple(args.view_size) if args.view_size else None
        view_configs = [
            ViewConfig(heading=heading % 360, fov=args.fov, pitch=args.pitch, size=size, zoom=args.zoom)
            for heading in args.views
        ]

    sem_pano = asyncio.Semaphore(args.max_pano)
    connector = aiohttp.TCPConnector(limit=args.conn_limit, limit_per_host=args.conn_limit)

    return await fetch_panos(
        sem_pano,
        connector,
        args.workers,
        args.zoom,
        dataset,
        args.output,
        fetch_config=FetchConfig(concurrency=args.max_tile),
        save_options=save_options_from_args(args),
        crop_borders=args.crop_borders,
        view_configs=view_configs,
    )


if __name__ == "__main__":
    try:
        args = parse_args()

        with timer() as t:
            total_panos, successful_panos, output_dir = asyncio.run(main(args))

        print(f"\n[gray]{'-' * 85}[/]")
        print(f"\n[orange1]| Processed [green]{successful_panos}/{total_panos}[/] panos in [green]{t.time_elapsed}[/][/]")
        print(f"[orange1]| Saved at [green]{output_dir}[/][/]\n")
    except (SVPanoError, OSError, ValueError) as error:
        print(f"[red][MAIN] Error: {error}[/]")
    except KeyboardInterrupt:
        print("[red]Keyboard Interrupted[/]")

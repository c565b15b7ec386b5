import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from minecraft_launcher_lib.types import CallbackDict

from .config import APP_NAME, APP_VERSION
from .database import ModDatabase
from .download import Fetcher
from .env import Env, init_env
from .exceptions import McdexError, UsageError
from .modpack import ModPack
from .settings import Settings
from .utils import empty

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 255


def console(message: str) -> None:
    print(message, flush=True)


@dataclass
class Context:
    env: Env
    settings: Settings
    fetcher: Fetcher
    callback: CallbackDict

    def pack_kwargs(self) -> dict:
        return {"settings": self.settings, "fetcher": self.fetcher, "callback": self.callback}


@dataclass
class Command:
    fn: Callable[[Context, List[str]], None]
    usage: str
    args: str = ""
    min_args: int = 0


def cmd_create_pack(ctx: Context, args: List[str]) -> None:
    name, minecraft_version, forge_version = args[:3]
    pack = ModPack.create(ctx.env, name, minecraft_version, forge_version, **ctx.pack_kwargs())
    pack.close()


def cmd_install_pack(ctx: Context, args: List[str]) -> None:
    name, url = args[:2]
    pack = ModPack(ctx.env, name, url=url, **ctx.pack_kwargs())
    try:
        pack.download()
        pack.process_manifest()
        pack.create_launcher_profile()
        pack.install_mods()
        pack.install_overrides()
    finally:
        pack.close()


def cmd_install_local_pack(ctx: Context, args: List[str]) -> None:
    directory = args[0]
    if directory == ".":
        directory = os.getcwd()
    directory = os.path.abspath(directory)

    pack = ModPack.open(ctx.env, directory, **ctx.pack_kwargs())
    try:
        pack.create_launcher_profile()
        pack.install_mods()
    finally:
        pack.close()


def cmd_update(ctx: Context, args: List[str]) -> None:
    with ModDatabase(ctx.env, ctx.fetcher, ctx.settings.index_url) as db:
        db.download()


def cmd_info(ctx: Context, args: List[str]) -> None:
    console(f"{APP_NAME} {APP_VERSION}")
    for key, value in ctx.env.describe().items():
        console(f"  {key}: {value}")


def cmd_register_mod(ctx: Context, args: List[str]) -> None:
    # Only CurseForge project URLs may omit the file id
    if "minecraft.curseforge.com" not in args[1] and len(args) < 3:
        raise UsageError("Insufficient arguments: a file id is required for this URL")

    pack = ModPack.open(ctx.env, args[0], **ctx.pack_kwargs())
    try:
        pack.register_mod(args[1], args[2] if len(args) > 2 else "")
    finally:
        pack.close()


def cmd_unregister_mod(ctx: Context, args: List[str]) -> None:
    pack = ModPack.open(ctx.env, args[0], **ctx.pack_kwargs())
    try:
        pack.unregister_mod(args[1])
    finally:
        pack.close()


def cmd_search_mods(ctx: Context, args: List[str]) -> None:
    minecraft_version = args[1] if len(args) > 1 else None
    with ModDatabase(ctx.env) as db:
        for mod in db.search_mods(args[0], minecraft_version):
            console(f"{mod.slug} ({mod.id}): {mod.name}")


def cmd_install_mods(ctx: Context, args: List[str]) -> None:
    pack = ModPack.open(ctx.env, args[0], **ctx.pack_kwargs())
    try:
        pack.install_mods()
    finally:
        pack.close()


def cmd_run_server(ctx: Context, args: List[str]) -> None:
    pack = ModPack.open(ctx.env, args[0], **ctx.pack_kwargs())
    try:
        pack.install_server()
    finally:
        pack.close()


COMMANDS: Dict[str, Command] = {
    "createPack": Command(cmd_create_pack, "Create a new mod pack", "<name> <mcVersion> <forgeVersion>", 3),
    "installPack": Command(cmd_install_pack, "Install a mod pack", "<name> <url>", 2),
    "installLocalPack": Command(cmd_install_local_pack, "Install specified directory as a pack", "<dir>", 1),
    "update": Command(cmd_update, "Download latest index"),
    "info": Command(cmd_info, "Show runtime info"),
    "registerMod": Command(
        cmd_register_mod, "Register a curseforge mod with an existing pack", "<pack> <modUrl> [<fileId>]", 2
    ),
    "unregisterMod": Command(cmd_unregister_mod, "Remove a mod from an existing pack", "<pack> <modUrl|slug>", 2),
    "searchMods": Command(cmd_search_mods, "Search the mod index", "<term> [<mcVersion>]", 1),
    "installMods": Command(cmd_install_mods, "Install all mods using the manifest", "<pack>", 1),
    "runServer": Command(cmd_run_server, "Install a minecraft server with an existing pack", "<pack>", 1),
}


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    lines = ["commands:"]
    for name, cmd in COMMANDS.items():
        lines.append(f"  {name} {cmd.args}".rstrip() + f"\n      {cmd.usage}")
    parser = ArgumentParser(
        prog=APP_NAME,
        usage="%(prog)s [<options>] <command> [<args>]",
        epilog="\n".join(lines),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    parser.add_argument("--minecraft-dir", help="Minecraft directory to use instead of the default one")
    parser.add_argument("-j", "--workers", type=int, help="parallel mod downloads (1-8)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("command")
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        options = parser.parse_args(argv)
        command = COMMANDS.get(options.command)
        if command is None:
            raise UsageError(f"unknown command '{options.command}'")
        if len(options.args) < command.min_args:
            raise UsageError(f"Insufficient arguments: {options.command} {command.args}")
    except UsageError as e:
        console(f"ERROR: {e.msg}")
        parser.print_help()
        return EXIT_USAGE

    setup_logging(options.verbose)

    try:
        env = init_env(options.minecraft_dir)
        settings = Settings(env).load()
        if options.workers is not None:
            settings.download_workers = options.workers
        callback: CallbackDict = {"setStatus": console, "setProgress": empty, "setMax": empty}

        with Fetcher() as fetcher:
            command.fn(Context(env, settings, fetcher, callback), options.args)
    except UsageError as e:
        console(f"ERROR: {e.msg}")
        return EXIT_USAGE
    except McdexError as e:
        logging.error(e.msg)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logging.error("Interrupted")
        return EXIT_ERROR

    return EXIT_OK


def run() -> None:
    sys.exit(main())

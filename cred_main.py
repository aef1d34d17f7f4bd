"""
CredManager - Interactive Menu

Main user interface for the credential store.
Features:
- Initialize the key file
- Add accounts (manual or generated secret)
- Update identifier or secret (old version goes to the archive)
- Delete accounts
- View active / archived accounts
- Copy identifier or secret to the clipboard
"""

import getpass
import logging
import os

import pyperclip

from credmgr import config, crypto
from credmgr.display import format_table
from credmgr.errors import ConfigurationError, CredManagerError
from credmgr.manager import open_manager


logger = logging.getLogger("credmgr.menu")


def clear_screen():
    os.system("cls" if os.name == "nt" else "clear")

def pause():
    input("\nPress Enter to continue...")

def setup_logging(settings):
    settings.home.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(settings.log_file),
        level=os.environ.get("CREDMGR_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def open_flow(settings):
    try:
        manager = open_manager(settings)
    except ConfigurationError as e:
        print(f"\nERROR: {e}")
        print("Use option 1 to create a key file first.")
        pause()
        return None
    logger.info("Store opened at %s", settings.home)
    return manager

def require_open(manager, settings):
    return manager if manager else open_flow(settings)

def choose_record(manager, archived=False):
    """Show a table and return the record picked by its 1-based number, or None."""
    records = manager.list_archived() if archived else manager.list_active()
    print(format_table(records))
    if not records:
        return None
    choice = input(f"\nEnter # (1-{len(records)}): ").strip()
    if not choice.lstrip("-").isdigit():
        print("Invalid choice.")
        return None
    get = manager.get_archived if archived else manager.get_active
    record = get(int(choice) - 1)
    if record is None:
        print("Invalid choice.")
        logger.warning("Invalid account selection: %s", choice)
    return record

def cmd_init_key(settings):
    clear_screen()
    print("=== Initialize Key File ===\n")
    if settings.key_file.exists():
        print(f"Key file exists at: {settings.key_file}")
        pause()
        return
    try:
        config.create_process_key(settings.key_file)
        print(f"✓ Key file created: {settings.key_file}")
        print("Back it up. Without it no stored account can be read.")
    except ConfigurationError as e:
        print(f"ERROR: {e}")
    pause()

def cmd_add_manual(manager, settings):
    clear_screen()
    print("=== Add Account (Manual) ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    name = input("Account name: ").strip()
    identifier = input("Account identifier (login): ").strip()
    secret = getpass.getpass("Secret/Password: ")
    try:
        record = manager.create(name, identifier, secret)
        print(f"\n✓ Added '{record.name}' (version {record.version})")
    except CredManagerError as e:
        print(f"ERROR: {e}")
    pause()
    return manager

def cmd_add_generated(manager, settings):
    clear_screen()
    print("=== Add Account (Generated) ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    name = input("Account name: ").strip()
    identifier = input("Account identifier (login): ").strip()
    try:
        length = int(input("Password length [20]: ").strip() or 20)
    except ValueError:
        length = 20
    symbols = input("Include symbols? [Y/n]: ").strip().lower() not in ('n', 'no')
    try:
        record = manager.create(name, identifier, crypto.generate_password(length, symbols))
        print(f"\n✓ Added '{record.name}' (version {record.version})")
        if input("Copy the new secret to clipboard? [y/N]: ").strip().lower() == 'y':
            copy_to_clipboard(manager.reveal(record))
    except CredManagerError as e:
        print(f"ERROR: {e}")
    pause()
    return manager

def cmd_update(manager, settings):
    clear_screen()
    print("=== Update Account ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    try:
        original = choose_record(manager)
        if original is None:
            pause()
            return manager
        print("\n1) Update identifier")
        print("2) Update secret")
        choice = input("\n> ").strip()
        if choice == '1':
            record = manager.update_identifier(original, input("New identifier: "))
        elif choice == '2':
            record = manager.update_secret(original, getpass.getpass("New secret: "))
        else:
            print("Cancelled.")
            pause()
            return manager
        print(f"\n✓ '{record.name}' is now version {record.version}; version {original.version} archived.")
    except CredManagerError as e:
        print(f"ERROR: {e}")
        logger.error("Update failed: %s", e)
    pause()
    return manager

def cmd_delete(manager, settings):
    clear_screen()
    print("=== Delete Account ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    try:
        record = choose_record(manager)
        if record is None:
            pause()
            return manager
        print(f"\nAbout to delete:")
        print(f"  Name: {record.name}")
        print(f"  Identifier: {record.identifier}")
        print("  No archived copy will be kept.")
        if input("\nType 'yes' to confirm: ").strip().lower() != 'yes':
            print("Cancelled.")
            pause()
            return manager
        manager.delete(record)
        print("\n✓ Account deleted.")
    except CredManagerError as e:
        print(f"ERROR: {e}")
        logger.error("Delete failed: %s", e)
    pause()
    return manager

def cmd_view(manager, settings, archived=False):
    clear_screen()
    print(f"=== {'Archived' if archived else 'Active'} Accounts ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    print(format_table(manager.list_archived() if archived else manager.list_active()))
    pause()
    return manager

def cmd_copy(manager, settings, archived=False):
    clear_screen()
    print(f"=== Copy From {'Archived' if archived else 'Active'} Account ===\n")
    manager = require_open(manager, settings)
    if not manager:
        return None
    has_any = manager.has_archived() if archived else manager.has_active()
    if not has_any:
        print("No accounts found.")
        pause()
        return manager
    try:
        record = choose_record(manager, archived)
        if record is None:
            pause()
            return manager
        print("\n1) Copy identifier")
        print("2) Copy secret")
        choice = input("\n> ").strip()
        if choice == '1':
            copy_to_clipboard(record.identifier)
        elif choice == '2':
            copy_to_clipboard(manager.reveal(record))
        else:
            print("Cancelled.")
    except CredManagerError as e:
        print(f"ERROR: {e}")
        logger.error("Copy failed: %s", e)
    pause()
    return manager

def copy_to_clipboard(text):
    try:
        pyperclip.copy(text)
        print("\n✓ Copied to clipboard!")
    except pyperclip.PyperclipException as e:
        print(f"\nERROR: Clipboard unavailable ({e}).")

def print_menu(manager, settings):
    print("CredManager - Interactive Menu")
    print("=" * 40)
    print(f"Home: {settings.home}")
    if manager:
        print(f"Active: {len(manager.list_active())}  Archived: {len(manager.list_archived())}")
    print("\n 1) Initialize key file")
    print(" 2) Add account (manual)")
    print(" 3) Add account (generated)")
    print(" 4) Update account")
    print(" 5) Delete account")
    print(" 6) View active accounts")
    print(" 7) View archived accounts")
    print(" 8) Copy from active account")
    print(" 9) Copy from archived account")
    print(" 0) Exit")

def main_menu(settings):
    manager = None
    while True:
        clear_screen()
        print_menu(manager, settings)
        c = input("\n> ").strip()
        if c == '1':
            cmd_init_key(settings)
        elif c == '2':
            manager = cmd_add_manual(manager, settings)
        elif c == '3':
            manager = cmd_add_generated(manager, settings)
        elif c == '4':
            manager = cmd_update(manager, settings)
        elif c == '5':
            manager = cmd_delete(manager, settings)
        elif c == '6':
            manager = cmd_view(manager, settings)
        elif c == '7':
            manager = cmd_view(manager, settings, archived=True)
        elif c == '8':
            manager = cmd_copy(manager, settings)
        elif c == '9':
            manager = cmd_copy(manager, settings, archived=True)
        elif c == '0':
            print("\nGoodbye!")
            logger.info("Exiting CredManager")
            break

def main():
    settings = config.load_settings()
    setup_logging(settings)
    try:
        main_menu(settings)
    except KeyboardInterrupt:
        print("\nExiting...")

if __name__ == "__main__":
    main()

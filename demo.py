"""
CredManager - Guided Journey (single run, no user input)

Run: python demo.py

Simulates what a first-time user would see in the interactive menu
(`cred_main.py`) and explains what happens under the hood:
 - Key file initialization
 - Adding accounts (manual + generated secret)
 - Viewing the active list
 - Updating an identifier (old version archived)
 - Updating a secret
 - Copying a secret
 - Deleting an account
 - Restarting: stores reload from disk, a corrupted file is skipped
 - Wrong process key / tampered file / tampered key material

Everything happens in a temporary directory that is removed at the end.
"""

import tempfile
from textwrap import indent

from credmgr import config, crypto
from credmgr.codec import RecordCodec
from credmgr.display import format_table
from credmgr.errors import DecryptionFailed
from credmgr.manager import open_manager
from credmgr.models import SecretValue


LINE = "=" * 70


def step(title: str, menu_option: str, code_path: str):
    print(f"\n{LINE}\n{title}  (menu option {menu_option}, code: {code_path})\n{LINE}")


def explain(title: str, body: str):
    print(f"\n[Behind the scenes] {title}")
    print(indent(body.strip(), "  "))


def main():
    with tempfile.TemporaryDirectory() as home:
        settings = config.load_settings(home)

        step("Initialize key file", "1", "credmgr/config.py:create_process_key")
        config.create_process_key(settings.key_file)
        print(f"Output: Key file created: {settings.key_file}")
        explain(
            "Process-wide key",
            "256 random bits, base64 text, written once. Every record file is encrypted with it "
            "(PBKDF2 with a fixed salt, then AES-256-GCM). Losing it makes every file unreadable.",
        )
        manager = open_manager(settings)

        step("Add account (manual)", "2", "credmgr/manager.py:create")
        mail = manager.create("Mail", "user@x.com", "p@ss")
        print(f"Output: Added '{mail.name}' (version {mail.version})")
        explain(
            "Two layers",
            "SecretValue.create draws an 8-byte salt and 256-bit key material just for this secret. "
            "Then the whole record (identifier, timestamps, version too) is encrypted again "
            f"with the process-wide key into accounts/{RecordCodec.file_name(mail)[:16]}...",
        )

        step("Add account (generated)", "3", "credmgr/crypto.py:generate_password")
        bank = manager.create("Bank", "alice", crypto.generate_password(20, use_symbols=True))
        print(f"Output: Added '{bank.name}' (version {bank.version})")

        step("View active accounts", "6", "credmgr/display.py:format_table")
        print(format_table(manager.list_active()))

        step("Update identifier", "4", "credmgr/manager.py:update")
        mail_v2 = manager.update_identifier(mail, "user2@x.com")
        print(f"Output: '{mail_v2.name}' is now version {mail_v2.version}")
        print("\nActive:")
        print(format_table(manager.list_active()))
        print("\nArchived:")
        print(format_table(manager.list_archived()))
        explain(
            "Archive-on-update order",
            "1) write v2 to accounts/  2) write stamped v1 to archived/  3) delete v1 from accounts/. "
            "A crash in between leaves a duplicate file, never a missing one.",
        )

        step("Update secret", "4", "credmgr/manager.py:update")
        bank_v2 = manager.update_secret(bank, "n3w-s3cret")
        print(f"Output: ciphertext changed: {bank.secret.ciphertext != bank_v2.secret.ciphertext}")

        step("Copy from active account", "8", "credmgr/models.py:SecretValue.reveal")
        print(f"Output: would copy {len(manager.reveal(mail_v2))} characters to the clipboard")

        step("Delete account", "5", "credmgr/manager.py:delete")
        manager.delete(bank_v2)
        print(f"Output: active={len(manager.list_active())} archived={len(manager.list_archived())}")
        explain("No archive on delete", "Deleting is explicit data loss: no copy goes to archived/.")

        step("Restart with a corrupted file", "-", "credmgr/store.py:initialize")
        (settings.active_dir / "garbage.ser").write_bytes(b"not a record")
        reopened = open_manager(settings)
        print(f"Output: active={len(reopened.list_active())} archived={len(reopened.list_archived())}")
        explain("Skip, don't fail", "The unreadable file is logged and skipped; the others load.")

        step("Attack: wrong process key", "-", "credmgr/codec.py:load")
        wrong = RecordCodec(crypto.derive_key())
        name = RecordCodec.file_name(mail_v2)
        print(f"Output: load with wrong key -> {wrong.load(settings.active_dir, name)}")

        step("Attack: flipped byte in a record file", "-", "credmgr/codec.py:decode")
        path = settings.active_dir / name
        blob = bytearray(path.read_bytes())
        blob[20] = ord("A") if blob[20] != ord("A") else ord("B")
        path.write_bytes(bytes(blob))
        print(f"Output: load tampered file -> {reopened.codec.load(settings.active_dir, name)}")

        step("Attack: replaced key material on a secret", "-", "credmgr/models.py:SecretValue.reveal")
        forged = SecretValue(mail_v2.secret.ciphertext, mail_v2.secret.salt, crypto.derive_key())
        try:
            forged.reveal()
            print("Unexpected: secret decrypted with foreign key material")
        except DecryptionFailed as e:
            print(f"Expected failure: {e}")

    print("\nDemo complete.")


if __name__ == "__main__":
    main()

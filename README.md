# emitsec

Security primitives for a publish/subscribe message broker: channel
parsing, 24-byte security keys, the ciphers that encrypt those keys, and
the licences that carry the cipher material. Pure Python, no dependencies.

## Install

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## What is inside

- `emitsec.hashing` – the seeded (37) MurmurHash3, returned byte-swapped,
  used for channel parts and key targets: `of_bytes(data)` and
  `of_string(value)`.
- `emitsec.channel` – `parse_channel(text)` and
  `make_channel(key, channel_with_options)` turn `key/a/b/c/?ttl=30&last=5`
  into a `Channel` with its `key`, `channel`, hashed `query`, `options`
  (`ChannelOption` values) and a `ChannelType` (`STATIC`, `WILDCARD` or
  `INVALID`). An unparsable input gives an `INVALID` channel rather than an
  exception. `Channel.ttl()` and `last()` return an integer or `None`,
  `exclude()` tells whether `me=0` was given, `window()` returns the
  `from`/`until` options as UTC datetimes (the epoch when unset or out of
  range), and `target()` is the hash of the first channel part.
- `emitsec.ident` – process-wide unique `ID` values from `new_id()` or an
  `IdGenerator(seed)`; `str(id)` is the upper-case hex of its varint
  encoding and `ID.unique(prefix, salt)` derives a base32 string with
  PBKDF2-SHA1.
- `emitsec.keycodec` – `decode_key(src)`, an unpadded URL-safe base64
  decoder raising `CorruptInputError` on bad input.
- `emitsec.key` – the `Key` type with `salt`, `master`, `contract`,
  `signature`, `permissions` and `expires` properties, `set_target(channel)`
  (raising `TargetInvalidError` or `TargetTooLongError`),
  `validate_channel(channel)`, `is_expired()`, `is_master()`,
  `has_permission(flag)` and `set_permission(flag, value)`; the
  `Permission` flags.
- `emitsec.xtea`, `emitsec.salsa` – the `Xtea`, `Salsa` and `Shuffle`
  ciphers, each with `encrypt_key(key)` returning a 32-character string and
  `decrypt_key(buffer)` returning a `Key`. `emitsec.salsa` also exposes
  `hsalsa20(key, nonce)` and `xor_key_stream(data, counter, key)`.
- `emitsec.license_v1`, `emitsec.license` – licence versions 1 to 3
  (`LicenseV1`, `LicenseV2`, `LicenseV3`), each with `cipher()`,
  `new_master_key(id)` and a string form ending in `:1`, `:2` or `:3`.
  `new()` creates a fresh version 3 licence and its encrypted master key,
  `parse(data)` reads a licence of any version and raises `LicenseError`
  on bad input.

## Example

    from emitsec.channel import parse_channel
    from emitsec.key import Key, Permission
    from emitsec.license import new, parse

    licence_text, encrypted_master = new()
    licence = parse(licence_text)
    cipher = licence.cipher()
    master_key = cipher.decrypt_key(encrypted_master.encode())
    assert master_key.is_master()

    key = Key(bytes(24))
    key.set_target("a/b/#/")
    key.set_permission(Permission.READ, True)
    channel = parse_channel(b"placeholder/a/b/c/?last=5")
    assert key.validate_channel(channel)
    assert channel.last() == 5

## What it does not do

This package holds only the security building blocks. It is not a broker:
it has no network server, no MQTT handling, no clustering, no message
storage or history, no key-ban service and no command-line tool.
# imchat

Building blocks for the account side of an instant-messaging service:
importing users from spreadsheets, sending verification codes by e-mail or
text message, recording which data migrations have run, waiting for backing
services to come up, and reporting build information.

Python 3.10 or later is required. The only dependency is `defusedxml`,
used to read workbook XML safely.

## Modules

| Module | Purpose |
| --- | --- |
| `imchat.xlsx` | Reads `.xlsx` workbooks into dataclass rows: `open_workbook`, `Workbook`, `parse_sheet`, `parse_all`, plus `num_to_az`, `get_axis`, `string_to_value`, `zero_value`, `get_sheet_name` and a ready-made `User` row. |
| `imchat.email` | `Mail` builds and sends a verification-code message over SMTP (`name`, `build_message`, `send_mail`). |
| `imchat.sms` | `SMS`, an abstract base for text-message providers (`name`, `send_code`). |
| `imchat.dataversion` | `check_version` and `set_version` record which data migrations have run, in the `data_version` collection (`COLLECTION`). |
| `imchat.healthcheck` | `perform_checks` retries a set of component checks until all pass. |
| `imchat.version` | `get()` returns an `Info`, `get_single_version()` the version string; `Output` and `OpenIMServerVersion` combine it with a server's version. |
| `imchat.util` | `out_dir()` resolves and checks an output directory; `exit_with_error()` and `sigterm_exit()` report to standard error. |

## Spreadsheets

```python
from imchat.xlsx import get_axis, num_to_az, string_to_value

num_to_az(1)                    # "A"
num_to_az(27)                   # "AA"
get_axis(2, 5)                  # "B5"
string_to_value("t", "bool")    # True
string_to_value("", "int32")    # 0
```

`string_to_value` accepts the kinds `bool`, `int`, `int8`–`int64`, `uint`,
`uint8`–`uint64`, `float32`, `float64` and `string` (or the types `bool`,
`int`, `float`, `str`) and raises `ValueError` for text that does not fit.

Reading the `user` sheet of an import file into `User` rows:

```python
from imchat.xlsx import User, open_workbook, parse_sheet

with open("users.xlsx", "rb") as fh:
    workbook = open_workbook(fh)
for user in parse_sheet(workbook, User):
    print(user.user_id, user.nickname, user.email)
```

Any dataclass can serve as a row. Its sheet is named by a `SHEET_NAME`
class variable, or else by the class name. The first row of the sheet holds
column names, matched against each field's `column` metadata or its name; a
field with `column` set to `-` is skipped. Reading stops at the first row
whose mapped cells are all empty, and a workbook without the sheet gives an
empty list. `parse_all(source, ModelA, ModelB, ...)` opens one workbook and
returns a list of rows per model.

## Verification codes

```python
from imchat.email import Mail

mail = Mail("smtp.example.com", 465, "noreply@example.com", "secret", "Your code")
mail.send_mail("alice@example.com", "123456")
```

Port 465 is reached over SSL; on other ports STARTTLS is used when the server
offers it. A `smtp_factory` keyword may supply the SMTP client instead.

`SMS` is abstract: a provider subclass sets `provider_name` and implements
`_deliver(phone_numbers, template_param)`, which receives the area code and
number joined together and the parameters as JSON, e.g. `{"code":"123456"}`.

```python
from imchat.sms import SMS

class PrintingSMS(SMS):
    provider_name = "print"

    def _deliver(self, phone_numbers, template_param):
        print(phone_numbers, template_param)

PrintingSMS().send_code("+1", "5550000", "123456")
```

## Data versions and health checks

`check_version(coll, key, current_version)` and `set_version(coll, key,
version)` work with any collection object offering `find_one` and
`update_one(filter, update, upsert=True)`, such as a MongoDB collection.

```python
from imchat.healthcheck import perform_checks

perform_checks({"Cache": ping_cache, "Database": ping_db}, max_retry=30, interval=1.0)
```

Each check fails by raising; passed checks are not run again, and
`RuntimeError` is raised if not all have passed after `max_retry` rounds.

## What this package does not do

It does not issue or verify login tokens, does not validate incoming API
requests, and ships no text-message provider, database client, server or
command-line program. Storage for data versions and the component checks
themselves are supplied by the caller.
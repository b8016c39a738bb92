# osskit

Building blocks for talking to an OSS-style object storage service, plus
a small client for the instance metadata service that cloud virtual
machines can reach.

## Install

```
pip install osskit
```

For the test suite:

```
pip install "osskit[test]"
pytest
```

## Modules

| Module | What it holds |
| --- | --- |
| `osskit.transport` | `Request` and `Connection`: prepare, sign and send a request |
| `osskit.signature` | `sign_request`, `string_to_sign`, `create_signature`, `canonicalize_header`, `encode_params` |
| `osskit.models` | `ACL`, `Options`, `CopyOptions` and the XML request and answer types |
| `osskit.regions` | `Region` with its endpoint methods, and constants such as `HANGZHOU`, `BEIJING`, `US_EAST_1` |
| `osskit.errors` | `OSSError`, `should_retry`, `has_code` |
| `osskit.attempts` | `AttemptStrategy`, `Attempt` and the global retry strategy |
| `osskit.metadata` | `MetaData` and `MetaDataClient` for instance metadata |

## Sending requests

A `Connection` holds the credentials and endpoint settings. A `Request`
describes one call. `Connection.query` fills in the method (`GET` by
default) and the leading `/` of the path, sets the `Date` header, signs
the request and sends it. It returns whatever the parser you pass makes
of the body, or `None` when you pass no parser.

```python
from osskit.models import ACL, ListResp, Options
from osskit.regions import BEIJING
from osskit.transport import Connection, Request

conn = Connection("placeholder", "secret", region=BEIJING, secure=True)

# Store an object.
headers = {"Content-Type": ["text/plain"], "x-oss-acl": [ACL.PRIVATE.value]}
Options(cache_control="no-cache").add_headers(headers)
conn.query(Request(method="PUT", bucket="my-bucket", path="hello.txt",
                   headers=headers, payload=b"content"))

# Read it back; the parser receives the raw body.
data = conn.query(Request(bucket="my-bucket", path="hello.txt"), bytes)

# List a bucket.
listing = conn.query(Request(bucket="my-bucket", params={"prefix": ["hello"]}),
                     ListResp.from_xml)
for key in listing.contents:
    print(key.key, key.size)
```

The base URL comes from `Region.get_endpoint(internal, bucket, secure)`,
or from `endpoint=` when you give `Connection` one. A `security_token=`
is sent as the `x-oss-security-token` header. `Connection.run` sends a
request that is already prepared. It returns the `requests` response
together with the parsed body.

### Signing

`sign_request` returns new params and headers. When the params carry
`OSSAccessKeyId`, the signature goes into a `Signature` parameter and
`Expires` stands in for the date. Otherwise an `Authorization: OSS
<id>:<signature>` header is added. Only the sub-resource parameters that
OSS signs, such as `acl`, `uploadId` and `partNumber`, enter the signed
resource string.

### XML types

`models` parses answers with `ListResp.from_xml`, `BucketInfo.from_xml`,
`GetServiceResp.from_xml`, `AccessControlPolicy.from_xml`,
`CopyObjectResult.from_xml` and `parse_location`. `parse_location` falls
back to `oss-cn-hangzhou` when the answer is empty. `models` also writes
request bodies with `Delete.to_xml` and `WebsiteConfiguration.to_xml`.
`make_xml_document` adds the XML declaration in front of such a body.

## Errors and retries

Any status other than 200, 204 or 206 raises `osskit.errors.OSSError`.
It carries `status_code`, `code`, `message`, `bucket_name`,
`request_id` and `host_id`.

`should_retry` returns true for:

- timeouts and dropped connections,
- OSS error codes `InternalError`, `NoSuchUpload` and `NoSuchBucket`.

It never retries a transport failure of a `POST`.

The default strategy keeps trying for 5 seconds, with 0.2 seconds between
tries and at least 5 tries. Replace it with `set_attempt_strategy`, or
pass `None` to restore the default.

```python
from osskit.attempts import get_attempt_strategy
from osskit.errors import OSSError, should_retry

attempt = get_attempt_strategy().start()
while attempt.next():
    try:
        data = conn.query(Request(bucket="my-bucket", path="hello.txt"), bytes)
        break
    except OSSError as exc:
        if not (should_retry(exc) and attempt.has_next()):
            raise
```

## Instance metadata

```python
from osskit.metadata import MetaData

meta = MetaData()
print(meta.instance_id())
print(meta.region())
print(meta.dns_name_servers())
```

Each call fetches one entry from the metadata endpoint and retries
transient network failures. Single-value entries return the first line.
List entries such as `dns_name_servers` and `ntp_config_servers` return
every line. A non-200 answer raises `MetaDataError`.

This works only from inside a cloud instance that can reach the
metadata endpoint.

## What it does not do

There is no bucket or object layer on top of `Connection`. The package
has no ready-made calls for:

- creating, listing or deleting buckets,
- putting, getting, heading or copying objects,
- multipart uploads or large-object copies,
- building signed URLs or POST-form fields.

Each of these has to be composed from `Request`, `Connection`,
`sign_request` and the `models` types, as shown above. The package has
no command-line program either.
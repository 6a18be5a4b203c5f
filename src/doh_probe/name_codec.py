"""
Domain name encoding and decoding in DNS label format.

Decoding follows RFC 1035 message compression pointers and is bounded so
that malformed or adversarial buffers (pointer cycles, out-of-range
pointers, truncated labels) raise MalformedNameError instead of looping
or reading out of bounds.
"""

from .exceptions import LabelTooLongError, MalformedNameError


MAX_LABEL_LENGTH = 63
POINTER_MASK = 0xC0


def encode_name(domain: str) -> bytes:
    """
    Encode a domain name as a sequence of length-prefixed labels.

    Empty labels (leading, trailing or doubled dots) are dropped. The result
    is terminated by the zero-length root label.

    Args:
        domain: Domain name, e.g. "www.example.com"

    Returns:
        Encoded name bytes

    Raises:
        LabelTooLongError: If any label is longer than 63 bytes
    """
    out = bytearray()
    for label in domain.split("."):
        if not label:
            continue
        raw = label.encode("utf-8")
        if len(raw) > MAX_LABEL_LENGTH:
            raise LabelTooLongError(
                code="label_too_long",
                message=f"Domain label too long ({len(raw)} bytes): {label}",
                details={"label": label, "length": len(raw)},
            )
        out.append(len(raw))
        out += raw
    out.append(0)
    return bytes(out)


def decode_name(buffer: bytes, offset: int) -> tuple[str, int]:
    """
    Decode a possibly compressed name starting at offset.

    Args:
        buffer: The complete DNS message
        offset: Offset of the first length byte of the name

    Returns:
        Tuple of (dotted name, bytes consumed at offset). Bytes read after
        the first pointer jump are not counted; a pointer counts as 2.

    Raises:
        MalformedNameError: On any out-of-bounds read, bad pointer,
            oversized label or when the iteration cap is exceeded
    """
    labels: list[str] = []
    consumed = 0
    jumped = False
    position = offset
    steps = 0
    size = len(buffer)

    while True:
        # Every step consumes at least one distinct byte unless it loops.
        if steps > size:
            raise MalformedNameError(
                code="name_loop",
                message="Name decoding exceeded the safety limit",
                details={"offset": offset},
            )
        steps += 1

        if position >= size:
            raise MalformedNameError(
                code="name_out_of_bounds",
                message="Name runs past the end of the message",
                details={"offset": position},
            )

        length = buffer[position]

        if length & POINTER_MASK == POINTER_MASK:
            if position + 1 >= size:
                raise MalformedNameError(
                    code="pointer_truncated",
                    message="Compression pointer is truncated",
                    details={"offset": position},
                )
            pointer = ((length & 0x3F) << 8) | buffer[position + 1]
            if pointer >= size:
                raise MalformedNameError(
                    code="pointer_out_of_bounds",
                    message=f"Compression pointer {pointer} is outside the message",
                    details={"offset": position, "pointer": pointer},
                )
            if not jumped:
                consumed += 2
            jumped = True
            position = pointer
            continue

        if length == 0:
            if not jumped:
                consumed += 1
            break

        if length > MAX_LABEL_LENGTH:
            raise MalformedNameError(
                code="label_length_invalid",
                message=f"Invalid label length {length}",
                details={"offset": position, "length": length},
            )

        start = position + 1
        end = start + length
        if end > size:
            raise MalformedNameError(
                code="label_out_of_bounds",
                message="Label runs past the end of the message",
                details={"offset": position, "length": length},
            )
        labels.append(buffer[start:end].decode("utf-8", errors="replace"))
        position = end
        if not jumped:
            consumed += 1 + length

    return ".".join(labels), consumed

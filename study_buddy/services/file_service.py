"""File validation, type sniffing and guarded downloads."""

import ipaddress
import socket
from urllib.parse import urlparse

ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'tif', 'tiff', 'webp'}
ALLOWED_PDF_EXTENSIONS = {'pdf'}

STORAGE_URL_ALLOWED_HOST_SUFFIXES = (
    'firebasestorage.googleapis.com',
    'storage.googleapis.com',
    'firebasestorage.app',
)
MAX_URL_LENGTH = 2048
DOWNLOAD_CHUNK_BYTES = 64 * 1024

IMAGE_SIGNATURES = (
    b'\x89PNG\r\n\x1a\n',
    b'\xff\xd8\xff',
    b'GIF87a',
    b'GIF89a',
    b'BM',
    b'II*\x00',
    b'MM\x00*',
)


class DownloadError(Exception):
    """A remote document could not be fetched within the allowed limits."""


def allowed_file(filename, allowed_extensions):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


def has_pdf_signature(data):
    return bytes(data[:5]) == b'%PDF-'


def has_image_signature(data):
    head = bytes(data[:16])
    if head[:4] == b'RIFF' and head[8:12] == b'WEBP':
        return True
    return any(head.startswith(signature) for signature in IMAGE_SIGNATURES)


def detect_document_kind(data, filename='', mimetype=''):
    """Return 'pdf', 'image' or '' based on content first, then metadata."""
    if not data:
        return ''
    if has_pdf_signature(data):
        return 'pdf'
    if has_image_signature(data):
        return 'image'
    mimetype = str(mimetype or '').split(';')[0].strip().lower()
    name = str(filename or '')
    if mimetype == 'application/pdf' or allowed_file(name, ALLOWED_PDF_EXTENSIONS):
        return 'pdf'
    if mimetype.startswith('image/') or allowed_file(name, ALLOWED_IMAGE_EXTENSIONS):
        return 'image'
    return ''


def host_matches_allowed_suffix(hostname, suffixes=STORAGE_URL_ALLOWED_HOST_SUFFIXES):
    if not hostname:
        return False
    host = hostname.strip().lower()
    return any(host == suffix or host.endswith('.' + suffix) for suffix in suffixes)


def is_restricted_ip(ip_str):
    ip = ipaddress.ip_address(ip_str)
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_multicast or ip.is_reserved


def is_blocked_hostname(hostname):
    host = str(hostname or '').strip().lower()
    if not host:
        return True
    if host in {'localhost', 'localhost.localdomain'}:
        return True
    if host.endswith('.local') or host.endswith('.internal'):
        return True
    try:
        return is_restricted_ip(host)
    except ValueError:
        return False


def validate_storage_url(raw_url, *, resolve_host=True, getaddrinfo=socket.getaddrinfo):
    """Return (url, '') for an acceptable Firebase Storage URL, else ('', message)."""
    url = str(raw_url or '').strip()
    if not url:
        return '', 'fileUrl is required.'
    if len(url) > MAX_URL_LENGTH:
        return '', 'fileUrl is too long.'
    parsed = urlparse(url)
    if parsed.scheme.lower() != 'https':
        return '', 'Only HTTPS document URLs are supported.'
    if parsed.username or parsed.password:
        return '', 'Document URL credentials are not allowed.'
    host = (parsed.hostname or '').strip().lower()
    if not host:
        return '', 'Document URL host is missing.'
    if is_blocked_hostname(host):
        return '', 'This document host is not allowed.'
    if not host_matches_allowed_suffix(host):
        return '', 'Only Firebase Storage document URLs are supported.'
    if resolve_host:
        try:
            for _family, _kind, _proto, _canonname, sockaddr in getaddrinfo(host, 443, proto=socket.IPPROTO_TCP):
                if is_restricted_ip(sockaddr[0]):
                    return '', 'This document host resolves to a restricted network address.'
        except socket.gaierror:
            return '', 'Could not resolve the document URL host.'
    return url, ''


def download_url_bytes(url, *, max_bytes, http_get, timeout=30):
    """Stream `url` into memory, refusing bodies larger than `max_bytes`.

    Redirects are refused: the URL was vetted against the storage host
    allowlist, and a redirect target would bypass that check.
    """
    try:
        with http_get(url, stream=True, timeout=timeout, allow_redirects=False) as response:
            if 300 <= int(response.status_code) < 400:
                raise DownloadError('Redirects are not followed.')
            response.raise_for_status()
            declared = int(response.headers.get('Content-Length') or 0)
            if declared > max_bytes:
                raise DownloadError(f'Document is larger than {max_bytes} bytes.')
            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise DownloadError(f'Document is larger than {max_bytes} bytes.')
            return bytes(buffer), str(response.headers.get('Content-Type', '') or '')
    except DownloadError:
        raise
    except Exception as exc:
        raise DownloadError(f'Download failed: {exc}') from exc


def download_storage_blob(bucket, file_path, *, max_bytes):
    """Fetch an object from the Firebase Storage bucket."""
    if bucket is None:
        raise DownloadError('Storage bucket is not configured.')
    blob = bucket.blob(file_path)
    try:
        blob.reload()
    except Exception as exc:
        raise DownloadError(f'Storage object not found: {file_path}') from exc
    if blob.size is not None and int(blob.size) > max_bytes:
        raise DownloadError(f'Document is larger than {max_bytes} bytes.')
    return blob.download_as_bytes(), str(blob.content_type or '')

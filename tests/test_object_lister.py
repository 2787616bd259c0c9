"""Tests for paginated S3 listing."""

import boto3
import pytest
from moto import mock_aws

from s3_download.core.exceptions import ErrorKind, RetriesExhaustedError
from s3_download.objectstorage import S3ClientConfig, S3ClientManager
from s3_download.objectstorage.listing import ListingPage, S3ObjectLister
from s3_download.objectstorage.retry import RetryPolicy


def _page(keys, token=None):
    response = {
        "ResponseMetadata": {"HTTPStatusCode": 200},
        "Contents": [{"Key": key} for key in keys],
        "IsTruncated": token is not None,
    }
    if token is not None:
        response["NextContinuationToken"] = token
    return response


@mock_aws
class TestS3ObjectLister:
    """Test listing against a mocked bucket."""

    def setup_method(self, method):
        """Set up test environment."""
        self.s3_client = boto3.client("s3", region_name="us-east-1")
        self.s3_client.create_bucket(Bucket="test-bucket")

        for key in ["a/1.txt", "a/2.txt", "a/sub/3.txt", "b/4.txt"]:
            self.s3_client.put_object(Bucket="test-bucket", Key=key, Body=b"x")

        self.manager = S3ClientManager(S3ClientConfig(bucket_name="test-bucket"))

    def teardown_method(self, method):
        self.manager.close()

    def test_recursive_listing(self):
        """Test recursive listing returns keys at every depth."""
        lister = S3ObjectLister(self.manager)

        keys = list(lister.iter_keys("a/", recursive=True))

        assert sorted(keys) == ["a/1.txt", "a/2.txt", "a/sub/3.txt"]

    def test_non_recursive_listing(self):
        """Test non-recursive listing returns only immediate children."""
        lister = S3ObjectLister(self.manager)

        keys = list(lister.iter_keys("a/", recursive=False))

        assert sorted(keys) == ["a/1.txt", "a/2.txt"]

    def test_whole_bucket(self):
        lister = S3ObjectLister(self.manager)

        assert len(list(lister.iter_keys())) == 4

    def test_pages_are_stitched(self):
        """Test a listing spanning several pages yields every key once."""
        lister = S3ObjectLister(self.manager, page_size=1)

        keys = list(lister.iter_keys("a/"))

        assert sorted(keys) == ["a/1.txt", "a/2.txt", "a/sub/3.txt"]

    def test_local_style_folder(self):
        """Test a backslash folder is normalized before listing."""
        lister = S3ObjectLister(self.manager)

        keys = list(lister.iter_keys("\\a\\sub\\"))

        assert keys == ["a/sub/3.txt"]

    def test_list_keys_result(self):
        lister = S3ObjectLister(self.manager)

        result = lister.list_keys("b/")

        assert result.ok
        assert result.value == ["b/4.txt"]

    def test_missing_bucket_fails(self):
        """Test listing a missing bucket gives a permanent failure."""
        manager = S3ClientManager(S3ClientConfig(bucket_name="missing-bucket"))
        lister = S3ObjectLister(manager)

        result = lister.list_keys()

        assert not result.ok
        assert result.error_kind == ErrorKind.PERMANENT
        manager.close()


class TestListingRetries:
    """Test page retry and truncation with a mocked client."""

    def _lister(self, mock_client_manager, no_sleep):
        return S3ObjectLister(
            mock_client_manager,
            retry_policy=RetryPolicy(sleep=no_sleep),
            page_size=2,
            retry_delay=0.1,
            sleep=no_sleep,
        )

    def test_continuation_tokens_passed(self, mock_client_manager, no_sleep):
        """Test N truncated pages are requested with the previous token."""
        client = mock_client_manager.client
        client.list_objects_v2.side_effect = [
            _page(["k1", "k2"], token="t1"),
            _page(["k3", "k4"], token="t2"),
            _page(["k5"]),
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        assert list(lister.iter_keys("data")) == ["k1", "k2", "k3", "k4", "k5"]

        calls = client.list_objects_v2.call_args_list
        assert len(calls) == 3
        assert "ContinuationToken" not in calls[0].kwargs
        assert calls[1].kwargs["ContinuationToken"] == "t1"
        assert calls[2].kwargs["ContinuationToken"] == "t2"
        assert calls[0].kwargs["MaxKeys"] == 2
        assert calls[0].kwargs["Prefix"] == "data"
        assert "Delimiter" not in calls[0].kwargs

    def test_non_recursive_sets_delimiter(self, mock_client_manager, no_sleep):
        mock_client_manager.client.list_objects_v2.return_value = _page([])
        lister = self._lister(mock_client_manager, no_sleep)

        list(lister.iter_keys("data/", recursive=False))

        kwargs = mock_client_manager.client.list_objects_v2.call_args.kwargs
        assert kwargs["Delimiter"] == "/"

    def test_failing_page_retried(
        self, mock_client_manager, no_sleep, make_client_error
    ):
        """Test a transient page failure is retried after the list delay."""
        mock_client_manager.client.list_objects_v2.side_effect = [
            _page(["k1"], token="t1"),
            make_client_error("InternalError", 500),
            _page(["k2"]),
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        assert list(lister.iter_keys()) == ["k1", "k2"]
        no_sleep.assert_called_once_with(0.1)

    def test_failure_counter_resets_per_page(
        self, mock_client_manager, no_sleep, make_client_error
    ):
        """Test two failures before each page do not exhaust the retries."""
        error = make_client_error("InternalError", 500)
        mock_client_manager.client.list_objects_v2.side_effect = [
            error,
            error,
            _page(["k1"], token="t1"),
            error,
            error,
            _page(["k2"]),
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        assert list(lister.iter_keys()) == ["k1", "k2"]

    def test_exhausted_listing_truncates_silently(
        self, mock_client_manager, no_sleep, make_client_error
    ):
        """Test the default mode ends the listing with the keys produced so far."""
        error = make_client_error("InternalError", 500)
        mock_client_manager.client.list_objects_v2.side_effect = [
            _page(["k1"], token="t1"),
            error,
            error,
            error,
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        assert list(lister.iter_keys()) == ["k1"]
        assert mock_client_manager.client.list_objects_v2.call_count == 4

    def test_exhausted_listing_raises(
        self, mock_client_manager, no_sleep, make_client_error
    ):
        error = make_client_error("InternalError", 500)
        mock_client_manager.client.list_objects_v2.side_effect = [
            _page(["k1"], token="t1"),
            error,
            error,
            error,
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        keys = []
        with pytest.raises(RetriesExhaustedError):
            for key in lister.iter_keys(raise_on_error=True):
                keys.append(key)

        assert keys == ["k1"]

    def test_permanent_error_not_retried(
        self, mock_client_manager, no_sleep, make_client_error
    ):
        mock_client_manager.client.list_objects_v2.side_effect = make_client_error(
            "AccessDenied", 403
        )
        lister = self._lister(mock_client_manager, no_sleep)

        result = lister.list_keys()

        assert result.error_kind == ErrorKind.PERMANENT
        assert mock_client_manager.client.list_objects_v2.call_count == 1

    def test_fetch_page(self, mock_client_manager, no_sleep):
        mock_client_manager.client.list_objects_v2.return_value = _page(
            ["k1"], token="next"
        )
        lister = self._lister(mock_client_manager, no_sleep)

        page = lister.fetch_page("data")

        assert page == ListingPage(keys=["k1"], next_token="next", is_truncated=True)

    def test_listing_is_lazy(self, mock_client_manager, no_sleep):
        """Test the next page is only fetched once the current one is consumed."""
        mock_client_manager.client.list_objects_v2.side_effect = [
            _page(["k1"], token="t1"),
            _page(["k2"]),
        ]
        lister = self._lister(mock_client_manager, no_sleep)

        keys = lister.iter_keys()
        assert next(keys) == "k1"
        assert mock_client_manager.client.list_objects_v2.call_count == 1

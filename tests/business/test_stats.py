"""Tests for dashboard statistics"""
from business.stats import count_actions, summarize


class TestCountActions:

    def test_counts_and_urgent(self, sample_records):
        counts, urgent = count_actions(sample_records)

        assert counts == {"リコンタクト": 1, "クロージング": 1, "新規提案": 1, "完了": 1}
        assert urgent == 1

    def test_unknown_labels_dropped_blank_is_unset(self, make_record):
        records = [
            make_record(next_action="https://example.com"),
            make_record(next_action="[リンク](https://example.com)"),
            make_record(next_action=""),
            make_record(next_action="未設定"),
            make_record(next_action="フォローアップ"),
        ]
        counts, urgent = count_actions(records)

        assert counts == {"未設定": 2, "フォローアップ": 1}
        assert urgent == 1


class TestSummarize:

    def test_headline_figures(self, sample_records, now):
        stats = summarize(sample_records, now=now)

        assert stats["totalCustomers"] == 4
        assert stats["totalAmount"] == 350000
        assert stats["urgentCount"] == 1
        assert stats["contactsThisMonth"] == 2
        assert stats["newCustomersThisMonth"] == 0

    def test_new_customers_this_month(self, make_record, now):
        records = [
            make_record(transaction_count="", last_contact_date="2025/11/02"),
            make_record(transaction_count="0", last_contact_date="2025/10/31"),
            make_record(transaction_count="1", last_contact_date="2025/11/02"),
        ]
        assert summarize(records, now=now)["newCustomersThisMonth"] == 1

    def test_series_shapes(self, sample_records, now):
        stats = summarize(sample_records, now=now)

        daily = stats["dailyContacts"]
        assert len(daily) == 30
        assert daily[-1]["date"] == "2025-11-20"
        assert {"date": "2025-11-17", "count": 1} in daily

        monthly = stats["monthlyContacts"]
        assert len(monthly) == 12
        assert monthly[0]["month"] == "2024-12-01"
        assert monthly[-1] == {"month": "2025-11-01", "count": 2}

        sales = stats["monthlySales"]
        assert [s["month"] for s in sales] == [
            "2025-06-01", "2025-07-01", "2025-08-01", "2025-09-01", "2025-10-01", "2025-11-01",
        ]
        assert sales[2]["amount"] == 120000
        assert sales[-1]["amount"] == 230000

        assert stats["yearlySales"] == [
            {"year": 2023, "amount": 0},
            {"year": 2024, "amount": 0},
            {"year": 2025, "amount": 350000},
        ]

    def test_headline_uses_visible_series_use_all(self, sample_records, now):
        stats = summarize(sample_records[:1], sample_records, now=now)

        assert stats["totalCustomers"] == 1
        assert stats["totalAmount"] == 150000
        assert stats["contactsThisMonth"] == 2
        assert stats["yearlySales"][-1]["amount"] == 350000

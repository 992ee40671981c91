import random
import string
import logging
from datetime import date, timedelta
from locust import HttpUser, TaskSet, task, between


# Helper Functions
def generate_email() -> str:
    """랜덤한 이메일 생성"""
    name = "".join(random.choices(string.ascii_lowercase + string.digits, k=10))
    return f"{name}@loadtest.local"


def select_slot():
    """Few slots shared by every user so bookings collide on purpose."""
    day = (date.today() + timedelta(days=random.randint(1, 2))).isoformat()
    at = random.choice(["19:00", "20:00"])
    return day, at


class DinerTasks(TaskSet):
    client: HttpUser
    reservation_id: int = None
    check_count: int = 0
    max_checks: int = 10
    cancel_check_range: int = random.randint(5, 7)

    def on_start(self):
        """사용자 시작 시 초기화"""
        self.credentials = {
            "name": "Load Tester",
            "email": generate_email(),
            "password": "secret123",
        }
        self.party_size = random.randint(1, 5)
        self.day, self.time = select_slot()

        # 가입하면 token 쿠키가 세션에 저장된다
        res = self.client.post("/api/users/register", json=self.credentials)
        if res.status_code != 201:
            logging.error(f"가입 실패: {res.text}")
            self.interrupt()

        self.book_table()

    @task(5)
    def search_available_tables(self):
        """같은 슬롯의 빈 테이블 조회"""
        res = self.client.get(
            "/api/tables/available",
            params={"date": self.day, "time": self.time, "party_size": self.party_size},
            name="available tables",
        )
        if res.status_code != 200:
            logging.error(f"테이블 조회 실패: {res.text}")

    @task(10)
    def check_my_reservations(self):
        """내 예약 조회 및 취소 처리"""
        if self.reservation_id and self.check_count < self.max_checks:
            res = self.client.get("/api/reservations/my", name="my reservations")
            self.check_count += 1

            reservations = res.json().get("data", [])
            logging.info(
                f"[예약 조회 {self.reservation_id}] 횟수: {self.check_count} | 건수: {len(reservations)}"
            )

            if self.check_count == self.cancel_check_range:
                self.cancel_reservation()
        else:
            self.interrupt()

    def book_table(self):
        """빈 테이블 하나를 골라 예약"""
        res = self.client.get(
            "/api/tables/available",
            params={"date": self.day, "time": self.time, "party_size": self.party_size},
            name="available tables",
        )
        tables = res.json().get("data", []) if res.status_code == 200 else []
        if not tables:
            logging.info(f"{self.day} {self.time} 빈 테이블 없음")
            self.interrupt()
            return

        payload = {
            "table_id": tables[0]["id"],
            "date": self.day,
            "time": self.time,
            "guests": self.party_size,
        }
        res = self.client.post("/api/reservations", json=payload)
        if res.status_code == 201:
            data = res.json().get("data", {})
            self.reservation_id = data.get("reservation", {}).get("id")
            logging.info(f"예약 성공: ID {self.reservation_id}")
        else:
            # another user took the slot between search and booking
            logging.error(f"예약 실패: {res.text}")
            self.interrupt()

    def cancel_reservation(self):
        """예약 취소 요청"""
        if self.reservation_id:
            res = self.client.post(
                f"/api/reservations/{self.reservation_id}/cancel",
                name="cancel reservation",
            )
            if res.status_code == 200:
                logging.info(f"예약 취소 성공: {self.reservation_id}")
            else:
                logging.error(f"예약 취소 실패: {res.text}")

            self.check_count = self.max_checks
        logging.info(f"User with {self.reservation_id} EXIT!! ")
        self.user.stop(True)


class DinerUser(HttpUser):
    tasks = [DinerTasks]
    host = ""  # 테스트 서버
    wait_time = between(1, 3)  # 요청 간 대기 시간 설정

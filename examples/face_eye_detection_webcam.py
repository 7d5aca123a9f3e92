import cv2

from face_eye_detection.imaging import bgr_to_frame
from face_eye_detection.vision import DetectionParams, DetectionPipeline


def main() -> None:
    cap = cv2.VideoCapture(0)
    pipeline = DetectionPipeline.from_cascades(
        face_params=DetectionParams(scale_factor=1.1, min_size=30),
        eye_params=DetectionParams(scale_factor=1.1, min_size=10),
    )

    while True:
        ret, frame = cap.read()
        if not ret:
            break

        result = pipeline.process_frame(bgr_to_frame(frame))
        cv2.imshow("Face & Eyes", cv2.cvtColor(result.rgba, cv2.COLOR_RGBA2BGR))

        if cv2.waitKey(1) & 0xFF == 27:
            break

    cap.release()
    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
